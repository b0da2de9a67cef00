"""Main job runner orchestrating the reminder sweep."""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, Optional, Protocol

from expiry_reminder.config import Config, config
from expiry_reminder.evaluate.expiry import create_policy, days_left
from expiry_reminder.evaluate.grouping import group_by_owner
from expiry_reminder.evaluate.models import (
    NotificationOutcome,
    ProductDocument,
    Reminder,
    SweepResult,
)
from expiry_reminder.evaluate.validation import validate_document
from expiry_reminder.jobs.guard import RunOnceGuard, RunStateStore
from expiry_reminder.jobs.metrics import SweepMetrics
from expiry_reminder.jobs.metrics_exporter import MetricsExporter
from expiry_reminder.notify.notifier import MailTransport, Notifier

logger = logging.getLogger(__name__)


class ProductStore(Protocol):
    async def list_all_products(self) -> list[ProductDocument]: ...


class SweepRunner:
    """Runs one check-and-notify sweep."""

    def __init__(
        self,
        product_store: ProductStore,
        transport: MailTransport,
        run_state_store: Optional[RunStateStore] = None,
        settings: Config = config,
        clock: Callable[[], datetime] = datetime.now,
        policy=None,
        metrics_exporter: Optional[MetricsExporter] = None,
    ):
        self.settings = settings
        self.product_store = product_store
        self.clock = clock
        self.policy = policy or create_policy(settings)
        self.notifier = Notifier(transport, grouped=settings.GROUPED)
        self.concurrency = max(1, settings.CONCURRENCY)

        if settings.RUN_ONCE and run_state_store is not None:
            self.guard: Optional[RunOnceGuard] = RunOnceGuard(
                run_state_store, clock=clock, mode=settings.GUARD_MODE
            )
        else:
            self.guard = None

        self.run_id = str(uuid.uuid4())
        self.metrics = SweepMetrics()
        self.metrics_exporter = metrics_exporter

    async def run(self) -> SweepResult:
        """Run the sweep and return its result."""
        self.run_id = str(uuid.uuid4())
        self.metrics = SweepMetrics()
        now = self.clock()
        run_date = now.date().isoformat()
        logger.info(f"Checking products for {run_date} (run {self.run_id}, policy {self.policy!r})")

        if self.guard is not None and await self.guard.already_ran_today():
            logger.warning(f"Skipping sweep: already ran on {run_date}")
            result = SweepResult(status="skipped", run_date=run_date)
            await self._export(result)
            return result

        documents = await self.product_store.list_all_products()
        reminders = self.evaluate(documents, now)
        groups = group_by_owner(reminders)
        outcomes = await self._dispatch(groups)

        if self.guard is not None:
            await self.guard.mark_completed()

        result = SweepResult(
            status="completed",
            run_date=run_date,
            scanned=self.metrics.counters["scanned"],
            skipped=self.metrics.counters["skipped"],
            matched=self.metrics.counters["matched"],
            outcomes=outcomes,
        )
        self._final_report(result)
        await self._export(result)
        return result

    def evaluate(self, documents: list[ProductDocument], now: datetime) -> list[Reminder]:
        """Validate documents and keep the ones due for a reminder."""
        reminders = []
        for doc in documents:
            self.metrics.increment("scanned")
            record, reason = validate_document(
                doc, require_remind_before=self.policy.requires_remind_before
            )
            if record is None:
                self.metrics.increment("skipped")
                logger.warning(f"Skipping doc {doc.id} due to {reason}")
                continue

            days = days_left(record.expires_at, now)
            if not self.policy.matches(record, days):
                logger.debug(f"No reminder for doc {doc.id}: {days} day(s) left")
                continue

            self.metrics.increment("matched")
            reminders.append(Reminder(record=record, days_left=days))
        return reminders

    async def _dispatch(self, groups: dict[str, list[Reminder]]) -> list[NotificationOutcome]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def notify_owner(owner: str, reminders: list[Reminder]) -> list[NotificationOutcome]:
            async with semaphore:
                return await self.notifier.notify(owner, reminders)

        results = await asyncio.gather(
            *(notify_owner(owner, reminders) for owner, reminders in groups.items())
        )
        outcomes = [outcome for group_outcomes in results for outcome in group_outcomes]
        for outcome in outcomes:
            self.metrics.increment("sent" if outcome.sent else "failed")
        return outcomes

    def _final_report(self, result: SweepResult) -> None:
        logger.info("=" * 60)
        logger.info("SWEEP REPORT")
        logger.info(f"Run ID: {self.run_id}")
        logger.info(f"Date: {result.run_date}")
        self.metrics.report()
        for outcome in result.outcomes:
            if not outcome.sent:
                logger.info(f"Not delivered: {outcome.recipient} ({outcome.error})")
        logger.info("=" * 60)

    async def _export(self, result: SweepResult) -> None:
        if self.metrics_exporter is None:
            return
        await self.metrics_exporter.export_metrics(
            run_id=self.run_id,
            run_date=result.run_date,
            status=result.status,
            summary=self.metrics.get_summary(),
        )


def build_runner(
    settings: Config = config,
    dry_run: bool = False,
    clock: Callable[[], datetime] = datetime.now,
) -> SweepRunner:
    """Wire the runner with the Supabase store and the configured transport."""
    from expiry_reminder.notify.transport import OutboxTransport, SmtpTransport
    from expiry_reminder.store.products import SupabaseProductStore
    from expiry_reminder.store.run_state import create_run_state_store

    product_store = SupabaseProductStore(settings)
    if dry_run:
        transport = OutboxTransport(run_date=clock().date())
    else:
        transport = SmtpTransport(settings)
    # Dry runs send nothing, so they must not mark the day as done.
    run_state_store = None
    if settings.RUN_ONCE and not dry_run:
        run_state_store = create_run_state_store(settings)

    return SweepRunner(
        product_store=product_store,
        transport=transport,
        run_state_store=run_state_store,
        settings=settings,
        clock=clock,
        metrics_exporter=MetricsExporter(),
    )
