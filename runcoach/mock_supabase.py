import copy
import threading
import uuid
from datetime import datetime, timezone


class MockSupabaseClient:
    """In-memory stand-in for the Supabase client, enabled with MOCK_DB=true."""

    def __init__(self, data=None):
        self.data = data if data is not None else {
            "profiles": [],
            "training_plans": [],
            "training_days": [],
            "strava_tokens": [],
            "strava_activities": [],
        }
        self._lock = threading.Lock()

    def table(self, table_name):
        self.data.setdefault(table_name, [])
        return MockQuery(self, table_name)


class MockQuery:
    def __init__(self, client, table_name):
        self.client = client
        self.table_name = table_name
        self.query_filters = []
        self.mode = "select"
        self.payload = None
        self.order_by = None
        self.limit_count = None
        self.single_mode = False

    def select(self, columns="*", count=None):
        self.mode = "select"
        return self

    def insert(self, data):
        self.mode = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.mode = "update"
        self.payload = data
        return self

    def delete(self):
        self.mode = "delete"
        return self

    def eq(self, column, value):
        self.query_filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def neq(self, column, value):
        self.query_filters.append(lambda row: str(row.get(column)) != str(value))
        return self

    def gte(self, column, value):
        self.query_filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column, value):
        self.query_filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def in_(self, column, values):
        wanted = {str(v) for v in values}
        self.query_filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def single(self):
        self.single_mode = True
        return self

    def _matches(self, row):
        return all(f(row) for f in self.query_filters)

    def execute(self):
        with self.client._lock:
            table = self.client.data[self.table_name]

            if self.mode == "insert":
                items = self.payload if isinstance(self.payload, list) else [self.payload]
                inserted = []
                for item in items:
                    row = copy.deepcopy(item)
                    row.setdefault("id", str(uuid.uuid4()))
                    row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                    table.append(row)
                    inserted.append(copy.deepcopy(row))
                return MockResponse(inserted)

            rows = [r for r in table if self._matches(r)]

            if self.mode == "update":
                for row in rows:
                    row.update(copy.deepcopy(self.payload))
                return MockResponse([copy.deepcopy(r) for r in rows])

            if self.mode == "delete":
                self.client.data[self.table_name] = [r for r in table if r not in rows]
                return MockResponse([copy.deepcopy(r) for r in rows])

            if self.order_by:
                column, desc = self.order_by
                rows = sorted(rows, key=lambda r: (r.get(column) is None, r.get(column) or ""), reverse=desc)
            if self.limit_count is not None:
                rows = rows[:self.limit_count]

            rows = [copy.deepcopy(r) for r in rows]
            if self.single_mode:
                return MockResponse(rows[0] if rows else None)
            return MockResponse(rows)


class MockResponse:
    def __init__(self, data):
        self.data = data
        self.count = len(data) if isinstance(data, list) else None
