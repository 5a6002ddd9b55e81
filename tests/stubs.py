import threading

from pymongo.errors import DuplicateKeyError

from bus_tracker.exceptions import UpstreamError


class StubFetcher:
    """Stands in for TransitDataFetcher; responses map line id to a list or an exception"""

    def __init__(self, lines=None, responses=None):
        self.lines = lines if lines is not None else []
        self.responses = responses or {}
        self.calls = []
        self._lock = threading.Lock()

    def fetch_lines(self):
        if isinstance(self.lines, Exception):
            raise self.lines
        return self.lines

    def fetch_positions(self, line_id):
        with self._lock:
            self.calls.append(line_id)
        response = self.responses.get(line_id, [])
        if callable(response):
            response = response()
        if isinstance(response, Exception):
            raise response
        return response


def transport_error(line_id):
    return UpstreamError(f"positions request for linea {line_id} failed: connection refused")


def _matches(doc, query):
    for field, expected in query.items():
        value = doc.get(field)
        if isinstance(expected, dict):
            if "$gte" in expected and not (value is not None and value >= expected["$gte"]):
                return False
            if "$lt" in expected and not (value is not None and value < expected["$lt"]):
                return False
        elif value != expected:
            return False
    return True


class StubCursor:
    def __init__(self, docs):
        self.docs = docs

    def sort(self, field, direction):
        self.docs = sorted(self.docs, key=lambda d: d.get(field), reverse=direction < 0)
        return self

    def limit(self, n):
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


class StubCollection:
    """In-memory subset of a pymongo Collection, enforcing unique indexes"""

    def __init__(self):
        self.docs = []
        self.indexes = {}

    def create_index(self, keys, unique=False, name=None):
        self.indexes[name] = {"key": list(keys), "unique": unique}
        return name

    def index_information(self):
        return dict(self.indexes)

    def drop_index(self, name):
        del self.indexes[name]

    def insert_one(self, doc):
        for index in self.indexes.values():
            if not index["unique"]:
                continue
            fields = [f for f, _ in index["key"]]
            if any(all(d.get(f) == doc.get(f) for f in fields) for d in self.docs):
                raise DuplicateKeyError("E11000 duplicate key")
        self.docs.append(dict(doc, _id=len(self.docs) + 1))

    def find_one(self, query, projection=None):
        for doc in self.docs:
            if _matches(doc, query):
                return doc
        return None

    def find(self, query, projection=None):
        docs = [{k: v for k, v in d.items() if k != "_id"} for d in self.docs if _matches(d, query)]
        return StubCursor(docs)

    def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))


class StubDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        return self.collections.setdefault(name, StubCollection())
