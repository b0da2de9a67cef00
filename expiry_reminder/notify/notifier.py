"""Best-effort dispatch of reminder emails."""
import logging
from typing import Protocol

from expiry_reminder.evaluate.models import NotificationOutcome, Reminder
from expiry_reminder.notify.render import render_messages

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class Notifier:
    """Renders and sends the reminders for one recipient.

    A failed send is logged and reported in the outcome. It never
    raises, so one bad address cannot block the other recipients.
    """

    def __init__(self, transport: MailTransport, grouped: bool = True):
        self.transport = transport
        self.grouped = grouped

    async def notify(self, recipient: str, reminders: list[Reminder]) -> list[NotificationOutcome]:
        outcomes = []
        for message in render_messages(reminders, grouped=self.grouped):
            outcome = NotificationOutcome(
                recipient=recipient,
                products=message.products,
                subject=message.subject,
            )
            try:
                await self.transport.send(recipient, message.subject, message.html)
                outcome.sent = True
                logger.info(f"Email sent to {recipient} for {', '.join(message.products)}")
            except Exception as e:
                outcome.error = str(e) or type(e).__name__
                logger.error(f"Failed to email {recipient}: {outcome.error}")
            outcomes.append(outcome)
        return outcomes
