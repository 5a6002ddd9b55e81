"""
MongoDB storage: a positions collection and an errors collection
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from bus_tracker.exceptions import StorageError
from bus_tracker.models.position import ErrorRecord, Position, blank_missing
from bus_tracker.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

POSITION_FIELDS = ('datetime', 'linea', 'unidad', 'lat', 'lon', 'hora')

KEY_INDEX = 'position_day_key'
# Unique index of earlier releases, not scoped by day
LEGACY_KEY_INDEX = 'position_key'


class MongoStorage(StorageAdapter):
    """Document store backend; dedup is backed by a unique (day, linea, unidad, hora) index"""

    name = 'mongo'

    def __init__(self, uri: str = 'mongodb://localhost:27017', db_name: str = 'bus_tracker',
                 client: Optional[MongoClient] = None, database=None):
        self.client = client
        if database is None:
            if self.client is None:
                self.client = MongoClient(uri, serverSelectionTimeoutMS=5000)
            database = self.client[db_name]
        self.positions = database['positions']
        self.errors = database['errors']
        self._indexes_ready = False

    def _ensure_indexes(self):
        if self._indexes_ready:
            return
        if LEGACY_KEY_INDEX in self.positions.index_information():
            logger.info(f"Dropping unique index {LEGACY_KEY_INDEX}, replaced by {KEY_INDEX}")
            self.positions.drop_index(LEGACY_KEY_INDEX)
        self.positions.create_index(
            [('day', ASCENDING), ('linea', ASCENDING), ('unidad', ASCENDING), ('hora', ASCENDING)],
            unique=True, name=KEY_INDEX
        )
        self.positions.create_index([('datetime', DESCENDING)], name='position_datetime')
        self.errors.create_index([('timestamp', DESCENDING)], name='error_timestamp')
        self._indexes_ready = True

    @staticmethod
    def _key_query(position: Position) -> dict:
        return {
            'day': position.day,
            'linea': blank_missing(position.linea),
            'unidad': blank_missing(position.unidad),
            'hora': blank_missing(position.hora)
        }

    def record_exists(self, position: Position) -> bool:
        return self.positions.find_one(self._key_query(position), {'_id': 1}) is not None

    def append_record(self, position: Position) -> bool:
        self._ensure_indexes()
        document = position.to_document()
        if document['datetime'] is None:
            document['datetime'] = datetime.now()
        document.update(self._key_query(position))
        try:
            self.positions.insert_one(document)
        except DuplicateKeyError:
            # Another writer stored the same key between check and insert
            logger.debug(f"Position {position.day} {position.key} already stored")
            return False
        except PyMongoError as e:
            raise StorageError(f"Failed to store position {position.key}: {e}") from e
        return True

    def append_error(self, message: str) -> ErrorRecord:
        record = ErrorRecord(message=message)
        self.errors.insert_one({'message': record.message, 'timestamp': record.timestamp})
        return record

    def count_records(self, day: Optional[str] = None) -> int:
        query = {}
        if day is not None:
            start = datetime.strptime(day, '%Y-%m-%d')
            query = {'datetime': {'$gte': start, '$lt': start + timedelta(days=1)}}
        return self.positions.count_documents(query)

    def list_records(self, limit: int = 100) -> List[Position]:
        cursor = self.positions.find({}, {'_id': 0}).sort('datetime', DESCENDING).limit(limit)
        return [Position(**{k: doc.get(k) for k in POSITION_FIELDS}) for doc in cursor]

    def count_errors(self) -> int:
        return self.errors.count_documents({})

    def list_errors(self, limit: int = 10) -> List[ErrorRecord]:
        cursor = self.errors.find({}, {'_id': 0}).sort('timestamp', DESCENDING).limit(limit)
        return [ErrorRecord(message=doc.get('message', ''), timestamp=doc.get('timestamp')) for doc in cursor]

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
