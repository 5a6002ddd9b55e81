"""
Process-wide context built once at startup
"""

from dataclasses import dataclass, field
from datetime import datetime

from bus_tracker.config import Config
from bus_tracker.storage.base import StorageAdapter


@dataclass(frozen=True)
class ServerContext:
    """Start time, storage and settings shared by pollers and request handlers"""
    storage: StorageAdapter
    config: Config = field(default_factory=Config)
    started_at: datetime = field(default_factory=datetime.now)

    def uptime_seconds(self, now: datetime = None) -> float:
        return ((now or datetime.now()) - self.started_at).total_seconds()
