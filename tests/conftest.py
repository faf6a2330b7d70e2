# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

``FakeSupabase`` is an in-memory stand-in for the supabase-py client that
understands the subset of the PostgREST query builder used by the app.
"""

import copy
import importlib
import os
import uuid
from types import SimpleNamespace
from typing import Any, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("ENV", "test")

from main import create_app
from dependencies.auth import CurrentUser, get_current_user


# Every module that calls get_supabase_client() by its imported name
SUPABASE_MODULES = [
    "dependencies.auth",
    "services.activity_log",
    "services.importer",
    "services.leads",
    "services.live_views",
    "services.notifications",
    "services.tickets",
    "services.wallet",
    "routers.activity",
    "routers.auth",
    "routers.dashboard",
    "routers.data",
    "routers.leads",
    "routers.notifications",
    "routers.reports",
    "routers.requests",
    "routers.riders",
    "routers.users",
    "routers.wallet",
]


# ============================================================
# In-memory query builder
# ============================================================
def _ilike(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    return pattern.strip("%").lower() in str(value).lower()


def _compare(row_value: Any, op: str, value: Any) -> bool:
    if op == "eq":
        return row_value == value or (row_value is not None and str(row_value) == str(value))
    if op == "neq":
        return not _compare(row_value, "eq", value)
    if op == "ilike":
        return _ilike(row_value, value)
    if row_value is None:
        return False
    if op == "gte":
        return str(row_value) >= str(value)
    if op == "lte":
        return str(row_value) <= str(value)
    if op == "lt":
        return str(row_value) < str(value)
    if op == "gt":
        return str(row_value) > str(value)
    raise ValueError(f"unsupported operator {op}")


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.on_conflict = None
        self.filters: List = []
        self.order_by = None
        self.limit_to = None
        self.range_to = None

    # ---------------- operations ----------------
    def select(self, *columns, **kwargs):
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def upsert(self, payload, on_conflict=None, **kwargs):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    # ---------------- filters ----------------
    def _add(self, column, op, value):
        self.filters.append(lambda row: _compare(row.get(column), op, value))
        return self

    def eq(self, column, value):
        return self._add(column, "eq", value)

    def neq(self, column, value):
        return self._add(column, "neq", value)

    def gte(self, column, value):
        return self._add(column, "gte", value)

    def lte(self, column, value):
        return self._add(column, "lte", value)

    def lt(self, column, value):
        return self._add(column, "lt", value)

    def gt(self, column, value):
        return self._add(column, "gt", value)

    def ilike(self, column, value):
        return self._add(column, "ilike", value)

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) is not None)
        return self

    def contains(self, column, value):
        def check(row):
            stored = row.get(column)
            if isinstance(value, dict):
                return isinstance(stored, dict) and all(stored.get(k) == v for k, v in value.items())
            return isinstance(stored, list) and all(v in stored for v in value)
        self.filters.append(check)
        return self

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, op, value = part.split(".", 2)
            clauses.append((column, op, value))
        self.filters.append(
            lambda row: any(_compare(row.get(c), o, v) for c, o, v in clauses)
        )
        return self

    # ---------------- shaping ----------------
    def order(self, column, desc=False, **kwargs):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.limit_to = count
        return self

    def range(self, start, end):
        self.range_to = (start, end)
        return self

    # ---------------- execution ----------------
    def _matches(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op))
        if (self.table, self.op) in self.db.failures:
            raise RuntimeError(f"{self.op} on {self.table} failed")

        rows = self.db.tables.setdefault(self.table, [])

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for item in items:
                row = copy.deepcopy(item)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                stored.append(copy.deepcopy(row))
            return SimpleNamespace(data=stored)

        if self.op == "upsert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = (self.on_conflict or "id").split(",")
            stored = []
            for item in items:
                existing = next(
                    (r for r in rows if all(r.get(k) == item.get(k) for k in keys)),
                    None,
                )
                if existing is None:
                    existing = {"id": str(uuid.uuid4())}
                    rows.append(existing)
                existing.update(copy.deepcopy(item))
                stored.append(copy.deepcopy(existing))
            return SimpleNamespace(data=stored)

        matched = [r for r in rows if self._matches(r)]

        if self.op == "update":
            for r in matched:
                r.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=copy.deepcopy(matched))

        if self.op == "delete":
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=copy.deepcopy(matched))

        result = copy.deepcopy(matched)
        if self.order_by:
            column, desc = self.order_by
            result.sort(
                key=lambda r: (r.get(column) is not None, r.get(column) if r.get(column) is not None else ""),
                reverse=desc,
            )
        if self.range_to:
            start, end = self.range_to
            result = result[start:end + 1]
        if self.limit_to is not None:
            result = result[: self.limit_to]
        return SimpleNamespace(data=result)


class FakeAuthAdmin:
    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.password_updates: Dict[str, str] = {}

    def create_user(self, attributes):
        self.created.append(attributes)
        return SimpleNamespace(user=SimpleNamespace(id=str(uuid.uuid4()), email=attributes["email"]))

    def update_user_by_id(self, user_id, attributes):
        self.password_updates[user_id] = attributes.get("password")
        return SimpleNamespace(user=SimpleNamespace(id=user_id))


class FakeAuth:
    def __init__(self):
        self.admin = FakeAuthAdmin()
        self.tokens: Dict[str, Any] = {}
        self.passwords: Dict[str, str] = {}

    def get_user(self, token):
        user = self.tokens.get(token)
        if user is None:
            raise RuntimeError("invalid token")
        return SimpleNamespace(user=user)

    def sign_in_with_password(self, credentials):
        if self.passwords.get(credentials["email"]) != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        session = SimpleNamespace(access_token="token-" + credentials["email"], refresh_token="refresh", expires_in=3600)
        return SimpleNamespace(session=session)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.failures = set()
        self.calls: List = []
        self.auth = FakeAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, table: str, *rows: dict) -> List[dict]:
        stored = []
        for row in rows:
            row = dict(row)
            row.setdefault("id", str(uuid.uuid4()))
            self.tables.setdefault(table, []).append(row)
            stored.append(row)
        return stored

    def rows(self, table: str) -> List[dict]:
        return self.tables.get(table, [])

    def fail(self, table: str, op: str):
        self.failures.add((table, op))


# ============================================================
# Fixtures
# ============================================================
@pytest.fixture
def fake_db(monkeypatch) -> FakeSupabase:
    """Fresh in-memory database patched into every module that uses Supabase."""
    db = FakeSupabase()
    for name in SUPABASE_MODULES:
        module = importlib.import_module(name)
        monkeypatch.setattr(module, "get_supabase_client", lambda: db)
    return db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Reset rate limiter state before each test."""
    from core.rate_limiter import reset_rate_limits as reset
    reset()
    yield
    reset()


@pytest.fixture(scope="function")
def app():
    """Create a test FastAPI application instance."""
    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app, fake_db) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login_as(app):
    """Override authentication with the given CurrentUser."""
    def _login(user: CurrentUser) -> CurrentUser:
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login


@pytest.fixture
def admin_user() -> CurrentUser:
    return CurrentUser(
        id="admin-1",
        email="admin@example.com",
        role="admin",
        full_name="Asha Admin",
    )


@pytest.fixture
def team_leader() -> CurrentUser:
    return CurrentUser(
        id="tl-1",
        email="lead@example.com",
        role="teamLeader",
        full_name="Ravi Lead",
        user_id="TRIEV_TL0001",
    )


@pytest.fixture
def other_team_leader() -> CurrentUser:
    return CurrentUser(
        id="tl-2",
        email="other@example.com",
        role="teamLeader",
        full_name="Meera Lead",
        user_id="TRIEV_TL0002",
    )


@pytest.fixture
def suspended_user() -> CurrentUser:
    return CurrentUser(
        id="tl-9",
        email="blocked@example.com",
        role="teamLeader",
        status="suspended",
        full_name="Blocked Lead",
    )
