#!/usr/bin/env python3
"""Utility script to inspect or reset the run-once guard state."""
import asyncio
import sqlite3
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from expiry_reminder.config import config
from expiry_reminder.store.run_state import SQLiteRunStateStore


def _connect() -> sqlite3.Connection | None:
    if not config.STATE_DB.exists():
        print(f"State database not found at {config.STATE_DB}")
        return None
    return sqlite3.connect(config.STATE_DB)


def show_state() -> None:
    """Show the recorded sweep date for each job."""
    conn = _connect()
    if conn is None:
        return
    cursor = conn.cursor()
    cursor.execute("SELECT job, date, updated_at FROM run_state ORDER BY job")
    rows = cursor.fetchall()

    print(f"State database: {config.STATE_DB}")
    if not rows:
        print("No sweep recorded")
    for job, run_date, updated_at in rows:
        print(f"{job}: last sweep {run_date} (updated {updated_at})")

    conn.close()


def reset(job: str) -> None:
    """Forget the last sweep so the job can run again today."""
    if not config.STATE_DB.exists():
        print(f"State database not found at {config.STATE_DB}")
        return
    store = SQLiteRunStateStore(config.STATE_DB, job_name=job)
    if asyncio.run(store.clear()):
        print(f"Cleared run state for {job}")
    else:
        print(f"No run state recorded for {job}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage:")
        print("  python scripts/reset_run_state.py show             # Show recorded sweep dates")
        print("  python scripts/reset_run_state.py reset [job]      # Allow the job to run again today")
        sys.exit(1)

    command = sys.argv[1]

    if command == "show":
        show_state()
    elif command == "reset":
        job = sys.argv[2] if len(sys.argv) > 2 else config.JOB_NAME
        reset(job)
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)
