"""Persistence of the last sweep date for the run-once guard."""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
import aiosqlite
from supabase import Client
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from expiry_reminder.config import Config, config
from expiry_reminder.evaluate.models import RunState
from expiry_reminder.store.products import create_supabase_client

logger = logging.getLogger(__name__)


class SQLiteRunStateStore:
    """Keeps RunState in a local SQLite table, one row per job."""

    def __init__(self, db_path: Optional[Path] = None, job_name: str = config.JOB_NAME):
        self.db_path = db_path or config.STATE_DB
        self.job_name = job_name
        self._initialized = False

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS run_state (
                    job TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    updated_at TIMESTAMP
                )
                """
            )
            await db.commit()
        self._initialized = True
        logger.debug(f"Run state database initialized at {self.db_path}")

    async def get_run_state(self) -> Optional[RunState]:
        if not self._initialized:
            await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT date FROM run_state WHERE job = ?",
                (self.job_name,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return RunState(date=row[0])

    async def set_run_state(self, state: RunState) -> None:
        if not self._initialized:
            await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO run_state (job, date, updated_at)
                VALUES (?, ?, datetime('now'))
                """,
                (self.job_name, state.date),
            )
            await db.commit()

    async def clear(self) -> bool:
        """Forget the recorded sweep. Returns True if a row was removed."""
        if not self._initialized:
            await self.initialize()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM run_state WHERE job = ?", (self.job_name,))
            await db.commit()
            return cursor.rowcount > 0


class SupabaseRunStateStore:
    """Keeps RunState as a single row of a Supabase table."""

    def __init__(self, settings: Config = config, client: Optional[Client] = None):
        self.client: Client = client or create_supabase_client(settings)
        self.table = settings.RUN_STATE_TABLE
        self.job_name = settings.JOB_NAME

    async def get_run_state(self) -> Optional[RunState]:
        loop = asyncio.get_running_loop()
        rows = await loop.run_in_executor(None, self._select_sync)
        if not rows or not rows[0].get("date"):
            return None
        return RunState(date=str(rows[0]["date"]))

    async def set_run_state(self, state: RunState) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._upsert_sync, state.date)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _select_sync(self) -> list[dict]:
        response = (
            self.client.table(self.table)
            .select("date")
            .eq("job", self.job_name)
            .limit(1)
            .execute()
        )
        return response.data or []

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((Exception,)),
        reraise=True,
    )
    def _upsert_sync(self, run_date: str) -> None:
        (
            self.client.table(self.table)
            .upsert(
                {
                    "job": self.job_name,
                    "date": run_date,
                    "updated_at": datetime.utcnow().isoformat(),
                },
                on_conflict="job",
            )
            .execute()
        )


def create_run_state_store(settings: Config = config):
    """Build the run state store selected by RUN_STATE_BACKEND."""
    if settings.RUN_STATE_BACKEND == "supabase":
        return SupabaseRunStateStore(settings)
    if settings.RUN_STATE_BACKEND == "sqlite":
        return SQLiteRunStateStore(settings.STATE_DB, settings.JOB_NAME)
    raise ValueError(f"Unknown run state backend: {settings.RUN_STATE_BACKEND}")
