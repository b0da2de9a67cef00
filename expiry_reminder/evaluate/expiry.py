"""Days-left computation and reminder threshold policies."""
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

from expiry_reminder.config import Config, parse_reminder_days
from expiry_reminder.evaluate.models import ProductRecord

DAY = timedelta(days=1)
NON_DIGITS = re.compile(r"\D")


def parse_expiry(value: Any) -> Optional[datetime]:
    """Parse an expiry value into a naive local datetime.

    Date-only input is taken as midnight. Returns None when the value
    cannot be read as a date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def days_left(expires_at: datetime, now: datetime) -> int:
    """Whole days until expiry, rounded up."""
    return math.ceil((expires_at - now) / DAY)


def parse_remind_before(value: Any) -> Optional[int]:
    """Extract the day count from values like "7days"."""
    if value is None:
        return None
    digits = NON_DIGITS.sub("", str(value))
    if not digits:
        return None
    return int(digits)


class FixedMilestonePolicy:
    """Matches when days-left is one of a fixed set of milestones."""

    requires_remind_before = False

    def __init__(self, milestones: Iterable[int]):
        self.milestones = frozenset(milestones)

    def matches(self, record: ProductRecord, days: int) -> bool:
        return days in self.milestones

    def __repr__(self) -> str:
        return f"FixedMilestonePolicy({sorted(self.milestones)})"


class PerRecordPolicy:
    """Matches when days-left equals the record's own remindBefore."""

    requires_remind_before = True

    def matches(self, record: ProductRecord, days: int) -> bool:
        # Exact day only, a missed sweep is not caught up
        return record.remind_before is not None and days == record.remind_before

    def __repr__(self) -> str:
        return "PerRecordPolicy()"


def create_policy(settings: Config):
    """Build the threshold policy selected by REMINDER_POLICY."""
    if settings.REMINDER_POLICY == "fixed":
        return FixedMilestonePolicy(parse_reminder_days(settings.REMINDER_DAYS))
    if settings.REMINDER_POLICY == "per_record":
        return PerRecordPolicy()
    raise ValueError(f"Unknown reminder policy: {settings.REMINDER_POLICY}")
