import os
import tempfile
import time
import unittest
from datetime import datetime, timedelta

from flask import Flask

from bus_tracker.api.routes import api_bp, init_api_routes
from bus_tracker.models.context import ServerContext
from bus_tracker.models.position import Position
from bus_tracker.services.line_discovery import LineDiscovery
from bus_tracker.storage.csv_store import CsvStorage
from bus_tracker.storage.sqlite_store import SqliteStorage

from stubs import StubFetcher, transport_error


def make_app(context, discovery=None):
    app = Flask(__name__)
    app.register_blueprint(api_bp)
    init_api_routes(context, discovery)
    return app


class CsvRoutesTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.csv_dir = os.path.join(self.tmp.name, "csv")
        self.storage = CsvStorage(self.csv_dir, os.path.join(self.tmp.name, "error_log.txt"))
        self.context = ServerContext(storage=self.storage, started_at=datetime.now() - timedelta(hours=2))
        self.client = make_app(self.context).test_client()

    def tearDown(self):
        self.tmp.cleanup()

    def test_index_lists_routes(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        body = response.get_data(as_text=True)
        self.assertIn("Available Routes", body)
        self.assertIn("/csv-info", body)

    def test_empty_store_gives_zero_counts(self):
        status = self.client.get("/status").get_json()
        self.assertEqual(status["status"], "running")
        self.assertEqual(status["totalPositions"], 0)
        self.assertEqual(status["todayPositions"], 0)
        self.assertEqual(status["recentErrors"], [])
        self.assertEqual(status["lines"], [])

        self.assertEqual(self.client.get("/csv-info").get_json(), {"status": "success", "csvInfo": []})
        self.assertEqual(self.client.get("/positions").get_json(), [])
        self.assertEqual(self.client.get("/errors").get_json(), [])

    def test_status_reports_uptime_counts_and_errors(self):
        self.storage.append_record(Position(1, 7, "-25.3", "-57.6", "10:00:00", datetime.now()))
        for i in range(12):
            self.storage.append_error(f"Error tracking positions for linea 3: failure {i}")

        status = self.client.get("/status").get_json()
        self.assertEqual(status["uptime"], "2 hours")
        self.assertEqual(status["date"], datetime.now().strftime("%Y-%m-%d"))
        self.assertEqual(status["totalPositions"], 1)
        self.assertEqual(status["totalErrors"], 12)
        self.assertEqual(len(status["recentErrors"]), 10)
        self.assertTrue(status["recentErrors"][-1].endswith("failure 11"))

    def test_csv_info(self):
        self.storage.append_record(Position(1, 7, "-25.3", "-57.6", "10:00:00", datetime.now()))
        self.storage.append_record(Position(1, 8, "-25.3", "-57.6", "10:05:00", datetime.now()))

        info = self.client.get("/csv-info").get_json()["csvInfo"]
        self.assertEqual(len(info), 1)
        self.assertEqual(info[0]["date"], datetime.now().strftime("%Y-%m-%d") + ".csv")
        self.assertEqual(info[0]["rowCount"], 2)
        self.assertEqual(info[0]["firstEntryTime"], "10:00:00")
        self.assertEqual(info[0]["lastEntryTime"], "10:05:00")
        self.assertTrue(info[0]["size"].endswith(" KB"))

    def test_malformed_file_gives_500_and_records_error(self):
        os.makedirs(self.csv_dir)
        with open(os.path.join(self.csv_dir, "2024-01-01.csv"), "w", encoding="utf8") as fh:
            fh.write("linea;unidad;lat;lon;hora\nbroken-row\n")

        response = self.client.get("/csv-info")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {"status": "error", "message": "Unable to fetch CSV info."})
        self.assertIn("Error fetching CSV info", self.storage.list_errors(1)[0].message)

    def test_positions_and_errors_most_recent_first(self):
        for hora in ("10:00:00", "10:00:30"):
            self.storage.append_record(Position(1, 7, "-25.3", "-57.6", hora, datetime.now()))
        self.storage.append_error("older")
        self.storage.append_error("newer")

        positions = self.client.get("/positions").get_json()
        self.assertEqual([p["hora"] for p in positions], ["10:00:30", "10:00:00"])
        errors = self.client.get("/errors").get_json()
        self.assertEqual([e["message"] for e in errors], ["newer", "older"])

    def test_failed_line_shows_in_errors_without_new_positions(self):
        fetcher = StubFetcher(lines=[{"id": 3}], responses={3: transport_error(3)})
        discovery = LineDiscovery(fetcher, self.storage, interval=0.01)
        client = make_app(self.context, discovery).test_client()
        before = len(client.get("/positions").get_json())

        discovery.start()
        deadline = time.time() + 5
        while time.time() < deadline and self.storage.count_errors() == 0:
            time.sleep(0.01)
        discovery.stop_all()
        discovery.pollers[0].join(2)

        status = client.get("/status").get_json()
        self.assertTrue(any("linea 3" in line for line in status["recentErrors"]))
        self.assertEqual(status["lines"][0]["linea"], 3)
        self.assertEqual(len(client.get("/positions").get_json()), before)


class SqliteRoutesTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.storage = SqliteStorage(os.path.join(self.tmp.name, "bus_positions.db"))
        self.client = make_app(ServerContext(storage=self.storage)).test_client()

    def tearDown(self):
        self.storage.close()
        self.tmp.cleanup()

    def test_csv_info_is_not_available(self):
        response = self.client.get("/csv-info")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["status"], "error")
        self.assertNotIn("/csv-info", self.client.get("/").get_data(as_text=True))

    def test_status_and_positions(self):
        self.storage.append_record(Position(2, 11, "-25.28", "-57.63", "08:15:00", datetime.now()))

        status = self.client.get("/status").get_json()
        self.assertEqual(status["storage"], "sqlite")
        self.assertEqual(status["totalPositions"], 1)
        self.assertEqual(status["uptime"], "a few seconds")

        positions = self.client.get("/positions").get_json()
        self.assertEqual(positions[0]["unidad"], 11)
        self.assertEqual(positions[0]["lat"], "-25.28")
