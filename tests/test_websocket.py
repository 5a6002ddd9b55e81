import os
import tempfile
import unittest

from flask import Flask
from flask_socketio import SocketIO

from bus_tracker.api import websocket
from bus_tracker.api.websocket import init_websocket_handlers
from bus_tracker.models.context import ServerContext
from bus_tracker.storage.csv_store import CsvStorage


class WebsocketHandlersTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.storage = CsvStorage(os.path.join(self.tmp.name, "csv"), os.path.join(self.tmp.name, "error_log.txt"))
        self.app = Flask(__name__)
        self.socketio = SocketIO(self.app, async_mode="threading")
        init_websocket_handlers(ServerContext(storage=self.storage), self.socketio)
        websocket.active_connections = 0

    def tearDown(self):
        self.tmp.cleanup()

    def test_connect_sends_status_snapshot(self):
        self.storage.append_error("Error fetching bus lines: timeout")

        client = self.socketio.test_client(self.app)
        self.assertTrue(client.is_connected())
        self.assertEqual(websocket.active_connections, 1)

        received = client.get_received()
        status = [msg for msg in received if msg["name"] == "status"]
        self.assertEqual(status[0]["args"][0], {"totalPositions": 0, "totalErrors": 1})

        client.disconnect()
        self.assertEqual(websocket.active_connections, 0)
