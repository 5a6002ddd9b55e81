"""
Position and error data models for the bus position tracker
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime as dt
from typing import Any, Optional, Tuple, Union

CSV_HEADER = ['linea', 'unidad', 'lat', 'lon', 'hora']


@dataclass
class Position:
    """A single observed bus position, values kept exactly as received"""
    linea: Union[int, str]
    unidad: Union[int, str]
    lat: str
    lon: str
    hora: str
    datetime: Optional[dt] = None

    @classmethod
    def from_api(cls, linea, data: dict, observed: Optional[dt] = None) -> 'Position':
        """Build a Position from one element of the posicionColectivos payload"""
        return cls(
            linea=linea,
            unidad=data.get('unidad'),
            lat=data.get('lat'),
            lon=data.get('lon'),
            hora=data.get('hora'),
            datetime=observed or dt.now()
        )

    @property
    def key(self) -> Tuple[str, str, str]:
        """Dedup key within one calendar day: line, unit and the upstream time of day"""
        return _text(self.linea), _text(self.unidad), _text(self.hora)

    @property
    def day(self) -> str:
        """YYYY-MM-DD partition the record belongs to; the key is unique per day"""
        return (self.datetime or dt.now()).strftime('%Y-%m-%d')

    @property
    def observed_at(self) -> Optional[dt]:
        """hora combined with the calendar date of the record"""
        if self.datetime is None or not self.hora:
            return None
        try:
            clock = dt.strptime(str(self.hora), '%H:%M:%S').time()
        except ValueError:
            return None
        return dt.combine(self.datetime.date(), clock)

    def to_row(self):
        return [self.linea, self.unidad, self.lat, self.lon, self.hora]

    def to_document(self) -> dict:
        return asdict(self)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['datetime'] = self.datetime.isoformat() if self.datetime else None
        return data


@dataclass
class ErrorRecord:
    """A recorded failure from polling, discovery or reporting"""
    message: str
    timestamp: dt = field(default_factory=dt.now)

    def to_line(self) -> str:
        return f"[{self.timestamp.isoformat()}] {self.message}"

    @classmethod
    def from_line(cls, line: str) -> 'ErrorRecord':
        """Parse a '[ISO-timestamp] message' error log line"""
        line = line.rstrip('\n')
        if line.startswith('[') and '] ' in line:
            stamp, message = line[1:].split('] ', 1)
            try:
                return cls(message=message, timestamp=dt.fromisoformat(stamp))
            except ValueError:
                pass
        return cls(message=line)

    def to_dict(self) -> dict:
        return {'message': self.message, 'timestamp': self.timestamp.isoformat()}


@dataclass
class InventoryEntry:
    """Row count and size summary for one day of CSV data"""
    date: str
    row_count: int
    size_bytes: int
    first_entry_time: Optional[str] = None
    last_entry_time: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'date': self.date,
            'rowCount': self.row_count,
            'size': f"{round(self.size_bytes / 1000)} KB",
            'firstEntryTime': self.first_entry_time,
            'lastEntryTime': self.last_entry_time
        }


def coerce_id(value: Any):
    """Return value as int when it looks like one, otherwise unchanged"""
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value)
    return value


def _text(value: Any) -> str:
    """Key component as written to a CSV cell; a missing value is ''"""
    return '' if value is None else str(value)


def blank_missing(value: Any):
    """Missing key components are stored as '' so they compare equal to themselves"""
    return '' if value is None else value
