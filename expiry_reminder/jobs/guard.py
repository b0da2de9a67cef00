"""Run-once guard: at most one sweep per calendar day."""
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from expiry_reminder.evaluate.models import RunState

logger = logging.getLogger(__name__)

MARK_BEFORE = "mark_before"
MARK_AFTER = "mark_after"


class RunStateStore(Protocol):
    async def get_run_state(self) -> Optional[RunState]: ...

    async def set_run_state(self, state: RunState) -> None: ...


class RunOnceGuard:
    """Checks and records the date of the last sweep.

    In mark_before mode the date is written as soon as the check passes,
    so a sweep that crashes halfway is not retried until tomorrow. In
    mark_after mode the runner calls mark_completed() once dispatch has
    finished, and a crashed sweep may run again the same day.
    """

    def __init__(
        self,
        store: RunStateStore,
        clock: Callable[[], datetime] = datetime.now,
        mode: str = MARK_BEFORE,
    ):
        if mode not in (MARK_BEFORE, MARK_AFTER):
            raise ValueError(f"Unknown guard mode: {mode}")
        self.store = store
        self.clock = clock
        self.mode = mode

    def today_key(self) -> str:
        return self.clock().date().isoformat()

    async def already_ran_today(self) -> bool:
        today = self.today_key()
        state = await self.store.get_run_state()
        if state is not None and state.date == today:
            logger.info(f"Reminder sweep already ran on {today}")
            return True
        if state is not None and state.date > today:
            logger.warning(f"Recorded sweep date {state.date} is after {today}; not sweeping")
            return True
        if self.mode == MARK_BEFORE:
            await self.store.set_run_state(RunState(date=today))
        return False

    async def mark_completed(self) -> None:
        if self.mode == MARK_AFTER:
            await self.store.set_run_state(RunState(date=self.today_key()))
