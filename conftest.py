"""Pytest configuration and shared fixtures."""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from docsync.core.models import IngestionConfig, WorkflowContext


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_datetime(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    return value


class FakeQuery:
    """Chainable stand-in for a postgrest query builder."""

    def __init__(self, client: "FakeSupabase", table: str):
        self.client = client
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.order_by: Optional[tuple] = None
        self.row_limit: Optional[int] = None

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, values):
        self.op = "update"
        self.payload = values
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column, value):
        bound = _as_datetime(value)
        self.filters.append(lambda row: row.get(column) is not None and _as_datetime(row[column]) >= bound)
        return self

    def order(self, column, desc: bool = False):
        self.order_by = (column, desc)
        return self

    def limit(self, count: int):
        self.row_limit = count
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.client.tables.setdefault(self.table, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self):
        self.client.calls.append((self.table, self.op))
        if (self.table, self.op) in self.client.failures:
            raise self.client.failures[(self.table, self.op)]

        rows = self.client.tables.setdefault(self.table, [])

        if self.op == "insert":
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for record in records:
                row = dict(record)
                row.setdefault("id", str(uuid.uuid4()))
                rows.append(row)
                inserted.append(row)
            return SimpleNamespace(data=inserted, count=None)

        if self.op == "update":
            matched = self._matching()
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=matched, count=None)

        if self.op == "delete":
            matched = self._matching()
            self.client.tables[self.table] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=matched, count=None)

        hook = self.client.select_hooks.get(self.table)
        if hook:
            self.client.select_counts[self.table] = self.client.select_counts.get(self.table, 0) + 1
            hook(self.client, self.client.select_counts[self.table])

        matched = [dict(row) for row in self._matching()]
        if self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda row: _as_datetime(row.get(column)) or EPOCH, reverse=desc)
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        return SimpleNamespace(data=matched, count=len(matched))


class FakeBucket:
    def __init__(self, client: "FakeSupabase", name: str):
        self.client = client
        self.name = name

    def upload(self, path, file, file_options=None):
        if self.client.storage_error:
            raise self.client.storage_error
        objects = self.client.objects.setdefault(self.name, {})
        if path in objects:
            raise RuntimeError("The resource already exists")
        objects[path] = (file, file_options or {})
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")


class FakeStorage:
    def __init__(self, client: "FakeSupabase"):
        self.client = client

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self.client, bucket)


class FakeSupabase:
    """In-memory Supabase client covering the table and storage calls the service makes."""

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}
        self.select_hooks: Dict[str, Callable[["FakeSupabase", int], None]] = {}
        self.select_counts: Dict[str, int] = {}
        self.storage_error: Optional[Exception] = None
        self.storage = FakeStorage(self)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def count_calls(self, table: str, op: str = "select") -> int:
        return sum(1 for call in self.calls if call == (table, op))


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


def iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def context() -> WorkflowContext:
    return WorkflowContext(team_id="team-1", user_id="user-1", access_token="token-abc")


@pytest.fixture
def workshop_config() -> IngestionConfig:
    return IngestionConfig(name="workshop", category="strategy", reference_table="workshop_documents")


@pytest.fixture
def hub_config() -> IngestionConfig:
    return IngestionConfig(
        name="hub", category="strategy", reference_table="workshop_documents", replace_existing=True
    )


@pytest.fixture
def build_lab_config() -> IngestionConfig:
    return IngestionConfig(
        name="build_lab",
        category="build_lab",
        path_prefix="build-lab/{user_id}",
        reference_table="build_lab_documents",
        reference_columns=["registration_id"],
        record_file_details=True,
        max_documents=2,
    )
