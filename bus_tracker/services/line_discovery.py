"""
Line discovery: fetch the bus lines once and start one poller per line
"""

import logging
from typing import List, Optional

from flask_socketio import SocketIO

from bus_tracker.services.position_poller import DEFAULT_INTERVAL, PositionPoller
from bus_tracker.services.transit_fetcher import TransitDataFetcher
from bus_tracker.storage.base import StorageAdapter

logger = logging.getLogger(__name__)


class LineDiscovery:
    """One-shot startup step; a failed line fetch leaves zero pollers and is not retried"""

    def __init__(self, data_fetcher: TransitDataFetcher, storage: StorageAdapter,
                 interval: float = DEFAULT_INTERVAL, socketio: Optional[SocketIO] = None):
        self.data_fetcher = data_fetcher
        self.storage = storage
        self.interval = interval
        self.socketio = socketio
        self.pollers: List[PositionPoller] = []

    def start(self) -> List[PositionPoller]:
        try:
            lines = self.data_fetcher.fetch_lines()
        except Exception as e:
            message = f"Error fetching bus lines: {e}"
            logger.error(message)
            try:
                self.storage.append_error(message)
            except Exception as store_error:
                logger.error(f"Could not record discovery error: {store_error}")
            return []

        for line in lines:
            line_id = line.get('id') if isinstance(line, dict) else None
            if line_id is None:
                logger.warning(f"Skipping bus line without id: {line!r}")
                continue

            poller = PositionPoller(line_id, self.data_fetcher, self.storage,
                                    interval=self.interval, socketio=self.socketio)
            self.pollers.append(poller)
            poller.start()

        logger.info(f"Started {len(self.pollers)} position pollers")
        return self.pollers

    def stop_all(self):
        for poller in self.pollers:
            poller.stop()

    def stats(self) -> List[dict]:
        return [poller.stats() for poller in self.pollers]
