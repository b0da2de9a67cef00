"""Group reminders by recipient."""
from typing import Iterable

from expiry_reminder.evaluate.models import Reminder


def group_by_owner(reminders: Iterable[Reminder]) -> dict[str, list[Reminder]]:
    """Map each owner to their reminders, keeping encounter order."""
    groups: dict[str, list[Reminder]] = {}
    for reminder in reminders:
        groups.setdefault(reminder.owner, []).append(reminder)
    return groups
