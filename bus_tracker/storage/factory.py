"""
Build the storage adapter selected by STORAGE_BACKEND
"""

import logging

from bus_tracker.config import Config
from bus_tracker.storage.base import StorageAdapter

logger = logging.getLogger(__name__)


def build_storage(config: Config) -> StorageAdapter:
    backend = config.storage_backend
    if backend == 'csv':
        from bus_tracker.storage.csv_store import CsvStorage
        storage = CsvStorage(config.csv_dir, config.error_log)
    elif backend == 'mongo':
        from bus_tracker.storage.mongo_store import MongoStorage
        storage = MongoStorage(config.mongodb_uri, config.mongodb_db)
    elif backend == 'sqlite':
        from bus_tracker.storage.sqlite_store import SqliteStorage
        storage = SqliteStorage(config.sqlite_path)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info(f"Using {storage.name} storage backend")
    return storage
