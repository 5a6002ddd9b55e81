"""
Day-partitioned CSV storage

One ';'-delimited file per calendar day under the csv directory, plus a
plain text error log with one '[ISO-timestamp] message' line per error.
"""

import csv
import logging
import os
import threading
from datetime import datetime
from typing import List, Optional

from bus_tracker.models.position import (CSV_HEADER, ErrorRecord, InventoryEntry,
                                         Position, coerce_id)
from bus_tracker.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

DELIMITER = ';'


class CsvStorage(StorageAdapter):
    """Stores positions in csv/<YYYY-MM-DD>.csv and errors in a log file"""

    name = 'csv'
    has_inventory = True

    def __init__(self, csv_dir: str = 'csv', error_log: str = 'error_log.txt'):
        self.csv_dir = csv_dir
        self.error_log = error_log
        # Serializes check-then-append so rows are never interleaved
        self._lock = threading.RLock()

    def _file_for(self, day: str) -> str:
        return os.path.join(self.csv_dir, f"{day}.csv")

    def _today(self) -> str:
        return datetime.now().strftime('%Y-%m-%d')

    def _read_rows(self, path: str) -> List[List[str]]:
        """Data rows of one day file, header and blank lines excluded"""
        if not os.path.exists(path):
            return []
        with open(path, 'r', encoding='utf8', newline='') as fh:
            rows = [row for row in csv.reader(fh, delimiter=DELIMITER) if row and any(cell.strip() for cell in row)]
        if rows and rows[0] == CSV_HEADER:
            rows = rows[1:]
        return rows

    def _day_files(self) -> List[str]:
        if not os.path.isdir(self.csv_dir):
            return []
        return sorted(f for f in os.listdir(self.csv_dir) if f.endswith('.csv'))

    def record_exists(self, position: Position) -> bool:
        day = position.day
        key = position.key
        with self._lock:
            for row in self._read_rows(self._file_for(day)):
                if len(row) >= 5 and (row[0], row[1], row[4]) == key:
                    return True
        return False

    def append_record(self, position: Position) -> bool:
        path = self._file_for(position.day)
        with self._lock:
            os.makedirs(self.csv_dir, exist_ok=True)
            is_new = not os.path.exists(path)
            with open(path, 'a', encoding='utf8', newline='') as fh:
                writer = csv.writer(fh, delimiter=DELIMITER, lineterminator='\n')
                if is_new:
                    writer.writerow(CSV_HEADER)
                writer.writerow(position.to_row())
        return True

    def add_if_absent(self, position: Position) -> bool:
        with self._lock:
            return super().add_if_absent(position)

    def append_error(self, message: str) -> ErrorRecord:
        record = ErrorRecord(message=message)
        with self._lock:
            directory = os.path.dirname(self.error_log)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.error_log, 'a', encoding='utf8') as fh:
                fh.write(record.to_line() + '\n')
        return record

    def count_records(self, day: Optional[str] = None) -> int:
        if day is not None:
            return len(self._read_rows(self._file_for(day)))
        return sum(len(self._read_rows(os.path.join(self.csv_dir, f))) for f in self._day_files())

    def list_records(self, limit: int = 100) -> List[Position]:
        records: List[Position] = []
        for filename in reversed(self._day_files()):
            day = datetime.strptime(filename[:-4], '%Y-%m-%d')
            for row in reversed(self._read_rows(os.path.join(self.csv_dir, filename))):
                if len(records) >= limit:
                    return records
                if len(row) < 5:
                    continue
                position = Position(linea=coerce_id(row[0]), unidad=coerce_id(row[1]),
                                    lat=row[2], lon=row[3], hora=row[4], datetime=day)
                position.datetime = position.observed_at or day
                records.append(position)
        return records

    def _error_lines(self) -> List[str]:
        if not os.path.exists(self.error_log):
            return []
        with open(self.error_log, 'r', encoding='utf8') as fh:
            return [line.rstrip('\n') for line in fh if line.strip()]

    def count_errors(self) -> int:
        return len(self._error_lines())

    def list_errors(self, limit: int = 10) -> List[ErrorRecord]:
        lines = self._error_lines()[-limit:] if limit else []
        return [ErrorRecord.from_line(line) for line in reversed(lines)]

    def inventory(self) -> List[InventoryEntry]:
        """One entry per day file; a missing csv directory gives an empty list"""
        entries = []
        for filename in self._day_files():
            path = os.path.join(self.csv_dir, filename)
            rows = self._read_rows(path)
            entries.append(InventoryEntry(
                date=filename,
                row_count=len(rows),
                size_bytes=os.path.getsize(path),
                first_entry_time=rows[0][4] if rows else None,
                last_entry_time=rows[-1][4] if rows else None
            ))
        return entries
