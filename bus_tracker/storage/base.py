"""
Storage adapter interface shared by the CSV, MongoDB and SQLite backends
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from bus_tracker.exceptions import InventoryNotSupported
from bus_tracker.models.position import ErrorRecord, InventoryEntry, Position


class StorageAdapter(ABC):
    """
    Persistence used by the pollers (write side) and the reporting routes (read side)

    Implementations must accept calls from many poller threads at once.
    Dedup is by (linea, unidad, hora) on every backend.
    """

    name = 'base'
    has_inventory = False

    @abstractmethod
    def record_exists(self, position: Position) -> bool:
        """True if a record with the same dedup key is already stored"""

    @abstractmethod
    def append_record(self, position: Position) -> bool:
        """Persist one position; False when the backend already held its key"""

    @abstractmethod
    def append_error(self, message: str) -> ErrorRecord:
        """Persist one error record and return it"""

    @abstractmethod
    def count_records(self, day: Optional[str] = None) -> int:
        """Count all records, or only those of one YYYY-MM-DD day"""

    @abstractmethod
    def list_records(self, limit: int = 100) -> List[Position]:
        """Latest records, most recent first"""

    @abstractmethod
    def count_errors(self) -> int:
        pass

    @abstractmethod
    def list_errors(self, limit: int = 10) -> List[ErrorRecord]:
        """Latest error records, most recent first"""

    def add_if_absent(self, position: Position) -> bool:
        """Append position unless its dedup key exists; True when it was written"""
        if self.record_exists(position):
            return False
        return self.append_record(position)

    def inventory(self) -> List[InventoryEntry]:
        raise InventoryNotSupported(f"{self.name} storage has no file inventory")

    def close(self) -> None:
        pass
