"""
SQLite storage with INSERT OR IGNORE on a (day, linea, unidad, hora) unique constraint

Databases written by the earlier C tracker (no day column, datetime stored
as '%d-%m-%Y %H:%M:%S') are migrated in place on open.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from typing import List, Optional

from bus_tracker.models.position import ErrorRecord, Position, blank_missing
from bus_tracker.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'
LEGACY_DATETIME_FORMAT = '%d-%m-%Y %H:%M:%S'

SCHEMA = """
CREATE TABLE IF NOT EXISTS positions (
    datetime TEXT,
    day TEXT,
    linea INTEGER,
    unidad INTEGER,
    lat TEXT,
    lon TEXT,
    hora TEXT,
    UNIQUE(day, linea, unidad, hora)
);
CREATE INDEX IF NOT EXISTS positions_datetime ON positions (day, datetime);
CREATE TABLE IF NOT EXISTS errors (
    message TEXT,
    timestamp TEXT
);
"""

# Day of a legacy row: 'dd-mm-YYYY ...' becomes 'YYYY-mm-dd'
MIGRATE_LEGACY = """
ALTER TABLE positions RENAME TO positions_legacy;
{schema}
INSERT OR IGNORE INTO positions (datetime, day, linea, unidad, lat, lon, hora)
SELECT datetime,
       CASE WHEN substr(datetime, 3, 1) = '-'
            THEN substr(datetime, 7, 4) || '-' || substr(datetime, 4, 2) || '-' || substr(datetime, 1, 2)
            ELSE substr(datetime, 1, 10) END,
       linea, unidad, lat, lon, hora
FROM positions_legacy;
DROP TABLE positions_legacy;
"""


def parse_stamp(stamp: Optional[str]) -> Optional[datetime]:
    """Read a stored datetime in either format; None when it is neither"""
    for fmt in (DATETIME_FORMAT, LEGACY_DATETIME_FORMAT):
        try:
            return datetime.strptime(stamp, fmt)
        except (TypeError, ValueError):
            continue
    return None


class SqliteStorage(StorageAdapter):
    """Single-file database backend sharing one connection across all threads"""

    name = 'sqlite'

    def __init__(self, path: str = 'bus_positions.db'):
        self.path = path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, timeout=30, check_same_thread=False)
        with self._lock:
            self._migrate()
            self._conn.executescript(SCHEMA)

    def _migrate(self):
        columns = [row[1] for row in self._conn.execute("PRAGMA table_info(positions)")]
        if columns and 'day' not in columns:
            logger.info(f"Migrating {self.path} positions table to day-scoped keys")
            self._conn.executescript(MIGRATE_LEGACY.format(schema=SCHEMA))

    def _query_one(self, sql: str, params=()):
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    def _query_all(self, sql: str, params=()):
        with self._lock:
            return self._conn.execute(sql, params).fetchall()

    def _write(self, sql: str, params=()) -> int:
        with self._lock, self._conn:
            return self._conn.execute(sql, params).rowcount

    def record_exists(self, position: Position) -> bool:
        row = self._query_one(
            "SELECT 1 FROM positions WHERE day = ? AND linea = ? AND unidad = ? AND hora = ? LIMIT 1",
            (position.day, blank_missing(position.linea), blank_missing(position.unidad),
             blank_missing(position.hora))
        )
        return row is not None

    def append_record(self, position: Position) -> bool:
        stamp = (position.datetime or datetime.now()).strftime(DATETIME_FORMAT)
        inserted = self._write(
            "INSERT OR IGNORE INTO positions (datetime, day, linea, unidad, lat, lon, hora) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (stamp, position.day, blank_missing(position.linea), blank_missing(position.unidad),
             position.lat, position.lon, blank_missing(position.hora))
        )
        return inserted == 1

    def append_error(self, message: str) -> ErrorRecord:
        record = ErrorRecord(message=message)
        self._write("INSERT INTO errors (message, timestamp) VALUES (?, ?)",
                    (record.message, record.timestamp.isoformat()))
        return record

    def count_records(self, day: Optional[str] = None) -> int:
        if day is None:
            return self._query_one("SELECT COUNT(*) FROM positions")[0]
        return self._query_one("SELECT COUNT(*) FROM positions WHERE day = ?", (day,))[0]

    def list_records(self, limit: int = 100) -> List[Position]:
        rows = self._query_all(
            "SELECT datetime, linea, unidad, lat, lon, hora FROM positions "
            "ORDER BY day DESC, datetime DESC, rowid DESC LIMIT ?",
            (limit,)
        )
        return [
            Position(datetime=parse_stamp(stamp), linea=linea, unidad=unidad, lat=lat, lon=lon, hora=hora)
            for stamp, linea, unidad, lat, lon, hora in rows
        ]

    def count_errors(self) -> int:
        return self._query_one("SELECT COUNT(*) FROM errors")[0]

    def list_errors(self, limit: int = 10) -> List[ErrorRecord]:
        rows = self._query_all(
            "SELECT message, timestamp FROM errors ORDER BY timestamp DESC, rowid DESC LIMIT ?", (limit,)
        )
        return [ErrorRecord(message=message, timestamp=datetime.fromisoformat(stamp)) for message, stamp in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
