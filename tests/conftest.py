import os

# Settings are read at import time by realty_api.main
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("REQUIRE_SERVICE_ROLE_KEY", "false")
os.environ.setdefault("BACKEND_CORS_ORIGINS", "*")

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from realty_api.config import Settings, get_settings
from realty_api.main import app
from realty_api.store import ListingStore, get_store
from tests.utils import iso

def _comparable(value: Any) -> Any:
    """Timestamps compare as datetimes, everything else as-is."""
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return value
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return value

class MockResponse:
    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count

class AsyncMockQueryBuilder:
    """Evaluates a PostgREST query chain against in-memory rows."""

    def __init__(self, supabase: "MockSupabase", table: str):
        self._supabase = supabase
        self._table = table
        self._action = "select"
        self._payload = None
        self._columns: Optional[List[str]] = None
        self._count = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order = None
        self._limit = None

    def select(self, *columns, count=None):
        joined = ",".join(columns)
        if joined.strip() != "*":
            self._columns = [c.strip() for c in joined.split(",") if c.strip()]
        self._count = count
        return self

    def insert(self, payload):
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, payload):
        self._action = "update"
        self._payload = payload
        return self

    def delete(self):
        self._action = "delete"
        return self

    def eq(self, field, value):
        self._filters.append(lambda row: row.get(field) == value)
        return self

    def gte(self, field, value):
        self._filters.append(
            lambda row: row.get(field) is not None and _comparable(row[field]) >= _comparable(value)
        )
        return self

    def lt(self, field, value):
        self._filters.append(
            lambda row: row.get(field) is not None and _comparable(row[field]) < _comparable(value)
        )
        return self

    def or_(self, conditions: str):
        clauses = []
        for clause in conditions.split(","):
            column, operator, pattern = clause.split(".", 2)
            assert operator == "ilike", f"Unsupported operator {operator}"
            clauses.append((column, pattern.strip("*").lower()))
        self._filters.append(
            lambda row: any(term in str(row.get(column) or "").lower() for column, term in clauses)
        )
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, size):
        self._limit = size
        return self

    def _matches(self, row):
        return all(check(row) for check in self._filters)

    def _project(self, row):
        if self._columns is None:
            return copy.deepcopy(row)
        return {column: copy.deepcopy(row.get(column)) for column in self._columns}

    async def execute(self):
        error = self._supabase._table_errors.get(self._table)
        if error:
            raise error

        rows = self._supabase.rows(self._table)

        if self._action == "insert":
            record = {
                "id": uuid.uuid4().hex,
                "created_at": iso(datetime.now(timezone.utc)),
                "updated_at": iso(datetime.now(timezone.utc)),
                **self._payload
            }
            rows.append(record)
            return MockResponse([copy.deepcopy(record)])

        if self._action == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(copy.deepcopy(row))
            return MockResponse(updated)

        if self._action == "delete":
            removed = [row for row in rows if self._matches(row)]
            rows[:] = [row for row in rows if not self._matches(row)]
            return MockResponse(removed)

        matched = [row for row in rows if self._matches(row)]
        if self._order:
            column, desc = self._order
            matched.sort(key=lambda row: _comparable(row.get(column)), reverse=desc)
        if self._limit is not None:
            matched = matched[:self._limit]
        count = len(matched) if self._count == "exact" else None
        return MockResponse([self._project(row) for row in matched], count=count)

class AsyncMockRpcBuilder:
    def __init__(self, supabase: "MockSupabase", name: str, params: Dict[str, Any]):
        self._supabase = supabase
        self._name = name
        self._params = params or {}

    async def execute(self):
        error = self._supabase._rpc_errors.get(self._name)
        if error:
            raise error
        handler = self._supabase._rpc_handlers[self._name]
        return MockResponse(handler(self._params))

class MockSupabase:
    """
    In-memory stand-in for the async Supabase client.

    Table queries run against seeded rows; rpc() runs Python versions of the
    SQL functions in supabase/migrations over the same rows.
    """

    def __init__(self):
        self._tables: Dict[str, List[Dict[str, Any]]] = {}
        self._table_errors: Dict[str, Exception] = {}
        self._rpc_errors: Dict[str, Exception] = {}
        self._rpc_handlers: Dict[str, Callable[[Dict[str, Any]], Any]] = {
            "get_average_active_price": self._average_active_price,
            "get_loan_type_distribution": self._loan_type_distribution,
            "get_listing_status_distribution": self._status_distribution,
            "get_listing_creation_counts": self._creation_counts,
        }
        self.rpc_calls: List[tuple] = []

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self._tables.setdefault(table, [])

    def table(self, name):
        return AsyncMockQueryBuilder(self, name)

    def from_(self, name):
        return self.table(name)

    def rpc(self, name, params=None):
        self.rpc_calls.append((name, params))
        return AsyncMockRpcBuilder(self, name, params)

    def set_table_rows(self, table_name, rows):
        self._tables[table_name] = [dict(row) for row in rows]

    def set_table_error(self, table_name, error):
        self._table_errors[table_name] = error

    def set_rpc_response(self, name, data):
        self._rpc_handlers[name] = lambda params: data

    def set_rpc_error(self, name, error):
        self._rpc_errors[name] = error

    # SQL function equivalents

    def _active(self):
        return [row for row in self.rows("listings") if row.get("status") == "ACTIVE"]

    def _average_active_price(self, params):
        prices = [row["price"] for row in self._active()]
        return sum(prices) / len(prices) if prices else 0

    def _loan_type_distribution(self, params):
        counts: Dict[str, int] = {}
        for row in self._active():
            loan_type = row.get("denormalized_assumable_loan_type")
            if loan_type is not None:
                counts[loan_type] = counts.get(loan_type, 0) + 1
        ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [{"loan_type": k, "count": v} for k, v in ordered[:params.get("top_n", 3)]]

    def _status_distribution(self, params):
        counts: Dict[str, int] = {}
        for row in self.rows("listings"):
            counts[row["status"]] = counts.get(row["status"], 0) + 1
        return [{"status": k, "count": counts[k]} for k in sorted(counts)]

    def _creation_counts(self, params):
        start = _comparable(params["start_date"])
        counts: Dict[str, int] = {}
        for row in self.rows("listings"):
            if _comparable(row["created_at"]) >= start:
                counts[row["created_at"]] = counts.get(row["created_at"], 0) + 1
        return [
            {"created_at": k, "count": counts[k]}
            for k in sorted(counts, key=_comparable)
        ]

@pytest.fixture(scope="session")
def settings() -> Settings:
    """Return application settings"""
    return get_settings()

@pytest.fixture
def mock_supabase() -> MockSupabase:
    return MockSupabase()

@pytest.fixture
def store(mock_supabase, settings) -> ListingStore:
    """Store wired to the in-memory client"""
    return ListingStore(settings, client=mock_supabase)

@pytest.fixture
def mock_client(store):
    """Client with the store dependency overridden for unit tests"""
    app.dependency_overrides[get_store] = lambda: store
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
