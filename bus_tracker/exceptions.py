"""
Exception types for the bus position tracker
"""


class TrackerError(Exception):
    """Base class for all tracker errors"""


class UpstreamError(TrackerError):
    """The transit API failed or returned something unusable"""


class StorageError(TrackerError):
    """A storage backend could not complete a write"""


class InventoryNotSupported(TrackerError):
    """Raised by backends that have no per-day file inventory"""
