"""Shared test doubles for the store, run state and mail transport."""
import smtplib
from datetime import datetime
from types import SimpleNamespace
from typing import Optional

import pytest

from expiry_reminder.config import Config
from expiry_reminder.evaluate.models import ProductDocument, RunState

NOW = datetime(2024, 1, 1, 0, 0)


class InMemoryProductStore:
    """Product store serving fixed rows."""

    def __init__(self, rows: list[dict], error: Optional[Exception] = None):
        self.rows = rows
        self.error = error
        self.calls = 0

    async def list_all_products(self) -> list[ProductDocument]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [ProductDocument.from_row(row) for row in self.rows]


class InMemoryRunStateStore:
    def __init__(self, state: Optional[RunState] = None):
        self.state = state
        self.writes = 0

    async def get_run_state(self) -> Optional[RunState]:
        return self.state

    async def set_run_state(self, state: RunState) -> None:
        self.writes += 1
        self.state = state


class RecordingTransport:
    """Records sent messages and fails for chosen recipients."""

    def __init__(self, fail_for: tuple[str, ...] = ()):
        self.fail_for = set(fail_for)
        self.sent: list[dict] = []

    async def send(self, to: str, subject: str, html: str) -> None:
        if to in self.fail_for:
            raise smtplib.SMTPException(f"Recipient rejected: {to}")
        self.sent.append({"to": to, "subject": subject, "html": html})


class FakeQuery:
    """Minimal stand-in for the supabase-py query builder."""

    def __init__(self, client: "FakeSupabaseClient", table: str):
        self.client = client
        self.table = table
        self.filters: dict = {}
        self.window: Optional[tuple[int, int]] = None
        self.max_rows: Optional[int] = None
        self.pending_upsert: Optional[tuple[dict, str]] = None

    def select(self, *columns, count=None):
        return self

    def order(self, column):
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def upsert(self, data, on_conflict=None):
        self.pending_upsert = (data, on_conflict)
        return self

    def execute(self):
        rows = self.client.tables.setdefault(self.table, [])
        self.client.executed.append(self)
        if self.pending_upsert is not None:
            data, key = self.pending_upsert
            rows[:] = [row for row in rows if row.get(key) != data[key]]
            rows.append(dict(data))
            return SimpleNamespace(data=[data])
        result = [
            row for row in rows
            if all(row.get(column) == value for column, value in self.filters.items())
        ]
        if self.window is not None:
            start, end = self.window
            result = result[start:end + 1]
        if self.max_rows is not None:
            result = result[:self.max_rows]
        return SimpleNamespace(data=result)


class FakeSupabaseClient:
    def __init__(self, tables: Optional[dict[str, list[dict]]] = None):
        self.tables = tables or {}
        self.executed: list[FakeQuery] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def make_settings(**overrides) -> Config:
    """A Config instance with test defaults, independent of the environment."""
    settings = Config()
    settings.SUPABASE_URL = "https://example.supabase.co"
    settings.SUPABASE_SERVICE_ROLE = "service-role"
    settings.EMAIL_HOST = "smtp.example.com"
    settings.EMAIL_USER = "reminders@example.com"
    settings.EMAIL_PASS = "secret"
    settings.EMAIL_FROM = None
    settings.REMINDER_POLICY = "per_record"
    settings.REMINDER_DAYS = "1,6,7,30,90,180"
    settings.GROUPED = True
    settings.RUN_ONCE = True
    settings.GUARD_MODE = "mark_before"
    settings.RUN_STATE_BACKEND = "sqlite"
    settings.CONCURRENCY = 4
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


@pytest.fixture
def settings() -> Config:
    return make_settings()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def run_state_store() -> InMemoryRunStateStore:
    return InMemoryRunStateStore()
