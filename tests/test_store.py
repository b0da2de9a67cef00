"""Tests for the Supabase product store and run state stores."""
import asyncio
import importlib.util
from datetime import datetime
from pathlib import Path

import pytest

from conftest import FakeSupabaseClient, make_settings
from expiry_reminder.config import config
from expiry_reminder.evaluate.models import RunState
from expiry_reminder.jobs.guard import RunOnceGuard
from expiry_reminder.store import products
from expiry_reminder.store.products import SupabaseProductStore
from expiry_reminder.store.run_state import (
    SQLiteRunStateStore,
    SupabaseRunStateStore,
    create_run_state_store,
)


def test_list_all_products_reads_every_page(monkeypatch):
    monkeypatch.setattr(products, "PAGE_SIZE", 2)
    rows = [
        {"id": i, "product": f"P{i}", "expiry": "2024-01-08", "owner": "u@x.com", "remindBefore": "7days"}
        for i in range(5)
    ]
    client = FakeSupabaseClient({"products": rows})
    store = SupabaseProductStore(make_settings(), client=client)

    docs = asyncio.run(store.list_all_products())

    assert [doc.product for doc in docs] == ["P0", "P1", "P2", "P3", "P4"]
    assert docs[0].id == "0"
    assert docs[0].remind_before == "7days"
    assert [q.window for q in client.executed] == [(0, 1), (2, 3), (4, 5)]


def test_list_all_products_empty_table():
    store = SupabaseProductStore(make_settings(), client=FakeSupabaseClient())
    assert asyncio.run(store.list_all_products()) == []


def test_product_store_uses_configured_table():
    client = FakeSupabaseClient({"pantry": [{"product": "Milk"}]})
    store = SupabaseProductStore(make_settings(PRODUCTS_TABLE="pantry"), client=client)
    docs = asyncio.run(store.list_all_products())
    assert [doc.product for doc in docs] == ["Milk"]


def test_product_store_requires_credentials():
    with pytest.raises(ValueError):
        SupabaseProductStore(make_settings(SUPABASE_URL=None))


def test_test_connection():
    store = SupabaseProductStore(make_settings(), client=FakeSupabaseClient())
    assert asyncio.run(store.test_connection()) is True


def test_sqlite_run_state_roundtrip(tmp_path):
    store = SQLiteRunStateStore(tmp_path / "state.db", job_name="expiry_reminder")

    async def scenario():
        assert await store.get_run_state() is None
        await store.set_run_state(RunState(date="2024-01-01"))
        first = await store.get_run_state()
        await store.set_run_state(RunState(date="2024-01-02"))
        second = await store.get_run_state()
        assert await store.clear() is True
        assert await store.clear() is False
        cleared = await store.get_run_state()
        return first, second, cleared

    first, second, cleared = asyncio.run(scenario())
    assert first == RunState(date="2024-01-01")
    assert second == RunState(date="2024-01-02")
    assert cleared is None


def test_sqlite_run_state_is_per_job(tmp_path):
    db_path = tmp_path / "state.db"
    a = SQLiteRunStateStore(db_path, job_name="a")
    b = SQLiteRunStateStore(db_path, job_name="b")

    async def scenario():
        await a.set_run_state(RunState(date="2024-01-01"))
        return await b.get_run_state()

    assert asyncio.run(scenario()) is None


def test_sqlite_run_state_with_guard(tmp_path):
    store = SQLiteRunStateStore(tmp_path / "state.db")
    guard = RunOnceGuard(store, clock=lambda: datetime(2024, 1, 1, 6, 0))

    async def scenario():
        return await guard.already_ran_today(), await guard.already_ran_today()

    assert asyncio.run(scenario()) == (False, True)


def test_supabase_run_state_roundtrip():
    client = FakeSupabaseClient()
    store = SupabaseRunStateStore(make_settings(JOB_NAME="expiry_reminder"), client=client)

    async def scenario():
        before = await store.get_run_state()
        await store.set_run_state(RunState(date="2024-01-01"))
        await store.set_run_state(RunState(date="2024-01-02"))
        return before, await store.get_run_state()

    before, after = asyncio.run(scenario())
    assert before is None
    assert after == RunState(date="2024-01-02")
    assert len(client.tables["job_state"]) == 1
    assert client.tables["job_state"][0]["job"] == "expiry_reminder"


def test_create_run_state_store(tmp_path):
    sqlite_store = create_run_state_store(
        make_settings(RUN_STATE_BACKEND="sqlite", STATE_DB=tmp_path / "s.db")
    )
    assert isinstance(sqlite_store, SQLiteRunStateStore)
    assert sqlite_store.db_path == tmp_path / "s.db"

    with pytest.raises(ValueError):
        create_run_state_store(make_settings(RUN_STATE_BACKEND="redis"))


def _load_reset_script():
    path = Path(__file__).parent.parent / "scripts" / "reset_run_state.py"
    spec = importlib.util.spec_from_file_location("reset_run_state", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_reset_script_clears_only_the_named_job(tmp_path, monkeypatch, capsys):
    """The reset script goes through the store and leaves other jobs alone."""
    db_path = tmp_path / "state.db"
    monkeypatch.setattr(config, "STATE_DB", db_path)
    a = SQLiteRunStateStore(db_path, job_name="a")
    b = SQLiteRunStateStore(db_path, job_name="b")
    asyncio.run(a.set_run_state(RunState(date="2024-01-01")))
    asyncio.run(b.set_run_state(RunState(date="2024-01-01")))

    script = _load_reset_script()
    script.reset("a")
    script.reset("a")

    out = capsys.readouterr().out
    assert "Cleared run state for a" in out
    assert "No run state recorded for a" in out
    assert asyncio.run(a.get_run_state()) is None
    assert asyncio.run(b.get_run_state()) == RunState(date="2024-01-01")
