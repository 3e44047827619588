"""Shared fixtures: an in-memory stand-in for the Supabase query builder, a temp local store and a manual clock."""
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest

from testhall import notify
from testhall.database import DatabaseClient
from testhall.local_store import LocalStore
from testhall.models import Option, Question


class FakeAPIError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


@dataclass
class FakeResponse:
    data: List[Dict]
    count: Optional[int] = None


class FakeQuery:
    """Supports the subset of the postgrest builder TestHall uses."""

    def __init__(self, backend: "FakeSupabase", table: str):
        self.backend = backend
        self.table_name = table
        self.op = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters = []
        self.orders = []
        self.row_limit: Optional[int] = None

    def select(self, *columns, **kwargs):
        self.op = "select"
        return self

    def insert(self, rows):
        self.op, self.payload = "insert", rows
        return self

    def upsert(self, rows, on_conflict: Optional[str] = None):
        self.op, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: str(row.get(column)) == str(value))
        return self

    def in_(self, column, values):
        wanted = {str(v) for v in values}
        self.filters.append(lambda row: str(row.get(column)) in wanted)
        return self

    def order(self, column, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self) -> FakeResponse:
        self.backend.calls.append((self.table_name, self.op))
        if self.table_name in self.backend.missing_tables:
            raise FakeAPIError(f'relation "{self.table_name}" does not exist', "42P01")
        if self.table_name in self.backend.failing_tables:
            raise FakeAPIError(f"server error on {self.table_name}", "500")

        rows = self.backend.tables.setdefault(self.table_name, [])
        if self.op == "select":
            result = [dict(r) for r in rows if self._matches(r)]
            for column, desc in reversed(self.orders):
                present = [r for r in result if r.get(column) is not None]
                absent = [r for r in result if r.get(column) is None]
                result = sorted(present, key=lambda r: r[column], reverse=desc) + absent
            if self.row_limit is not None:
                result = result[: self.row_limit]
            return FakeResponse(result)

        if self.op == "insert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for row in new_rows:
                row = dict(row)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)

        if self.op == "upsert":
            new_rows = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            written = []
            for row in new_rows:
                existing = next(
                    (r for r in rows if all(str(r.get(k)) == str(row.get(k)) for k in keys)), None
                )
                if existing is not None:
                    existing.update(row)
                    written.append(dict(existing))
                else:
                    row = dict(row)
                    row.setdefault("id", str(uuid.uuid4()))
                    rows.append(row)
                    written.append(dict(row))
            return FakeResponse(written)

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return FakeResponse(updated)

        if self.op == "delete":
            deleted = [r for r in rows if self._matches(r)]
            self.backend.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return FakeResponse(deleted)

        raise ValueError(f"Unsupported operation {self.op}")


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict]] = {}
        self.missing_tables = set()
        self.failing_tables = set()
        self.calls = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


class ManualClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_question(number: int, subject: str, correct: int = 0, marks=None, negative_marks=None) -> Question:
    return Question(
        id=f"q-{number}",
        text=f"Question {number}",
        subject=subject,
        options=[
            Option(id=f"q-{number}-{letter}", text=f"Option {letter.upper()}", is_correct=(j == correct))
            for j, letter in enumerate("abcd")
        ],
        marks=marks,
        negative_marks=negative_marks,
    )


@pytest.fixture(autouse=True)
def reset_notifications():
    notify._shown_once.clear()
    yield
    notify._shown_once.clear()


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def db(fake_supabase):
    return DatabaseClient(fake_supabase)


@pytest.fixture
def store(tmp_path):
    return LocalStore(root=tmp_path / "store")


@pytest.fixture
def clock():
    return ManualClock()
