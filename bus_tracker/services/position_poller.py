#!/usr/bin/env python3
"""
Position polling service for the bus position tracker
Runs one fetch/dedup/persist loop per bus line in a background thread
"""

import threading
import logging
from datetime import datetime
from typing import Optional

from flask_socketio import SocketIO

from bus_tracker.models.position import Position
from bus_tracker.services.transit_fetcher import TransitDataFetcher
from bus_tracker.storage.base import StorageAdapter

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.5


class PositionPoller:
    """
    Background loop that keeps one line's positions in storage
    """

    def __init__(self, line_id, data_fetcher: TransitDataFetcher, storage: StorageAdapter,
                 interval: float = DEFAULT_INTERVAL, socketio: Optional[SocketIO] = None):
        """
        Initialize the poller

        Args:
            line_id: Upstream id of the bus line
            data_fetcher: TransitDataFetcher instance
            storage: StorageAdapter the positions are written to
            interval: Pause between iterations in seconds (default: 0.5)
            socketio: Optional Flask-SocketIO instance for broadcasting new positions
        """
        self.line_id = line_id
        self.data_fetcher = data_fetcher
        self.storage = storage
        self.interval = interval
        self.socketio = socketio
        self.thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        self.iterations = 0
        self.errors = 0
        self.new_records = 0
        self.last_success: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self._stop_event.is_set()

    def start(self):
        """Start the polling thread"""
        if self.is_running:
            logger.warning(f"Poller for linea {self.line_id} is already running")
            return

        self._stop_event.clear()
        self.thread = threading.Thread(target=self._poll_loop, name=f"poller-{self.line_id}", daemon=True)
        self.thread.start()
        logger.info(f"Poller for linea {self.line_id} started with {self.interval}s interval")

    def stop(self):
        """Stop the polling thread; an in-progress sleep is cut short"""
        self._stop_event.set()
        if self.thread and self.thread.is_alive():
            logger.info(f"Stopping poller for linea {self.line_id}...")

    def join(self, timeout: Optional[float] = None):
        if self.thread:
            self.thread.join(timeout)

    def poll_once(self) -> int:
        """Fetch the line's positions and persist the unseen ones; returns how many were new"""
        payload = self.data_fetcher.fetch_positions(self.line_id)
        observed = datetime.now()

        new_count = 0
        for item in payload:
            position = Position.from_api(self.line_id, item, observed)
            if self.storage.add_if_absent(position):
                new_count += 1
                self._emit('new_position', position.to_dict())

        self.new_records += new_count
        self.last_success = observed
        if new_count:
            logger.info(f"Linea {self.line_id}: stored {new_count} new positions")
        return new_count

    def _poll_loop(self):
        """Main poll loop - runs in background thread"""
        while not self._stop_event.is_set():
            self.iterations += 1
            try:
                self.poll_once()
            except Exception as e:
                self.errors += 1
                self._record_error(f"Error tracking positions for linea {self.line_id}: {e}")

            # Fixed interval, no backoff
            self._stop_event.wait(self.interval)

        logger.info(f"Poller for linea {self.line_id} stopped")

    def _record_error(self, message: str):
        logger.error(message)
        try:
            record = self.storage.append_error(message)
        except Exception as e:
            logger.error(f"Could not record error for linea {self.line_id}: {e}")
            return
        self._emit('tracking_error', record.to_dict())

    def _emit(self, event: str, data: dict):
        if self.socketio is None:
            return
        try:
            self.socketio.emit(event, data)
        except Exception as e:
            logger.warning(f"Failed to emit {event} for linea {self.line_id}: {e}")

    def stats(self) -> dict:
        return {
            'linea': self.line_id,
            'running': self.is_running,
            'iterations': self.iterations,
            'errors': self.errors,
            'newRecords': self.new_records,
            'lastSuccess': self.last_success.isoformat() if self.last_success else None
        }
