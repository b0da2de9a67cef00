"""Email rendering for expiry reminders."""
from dataclasses import dataclass, field
from html import escape

from expiry_reminder.evaluate.models import Reminder


@dataclass
class RenderedMessage:
    subject: str
    html: str
    products: list[str] = field(default_factory=list)


def render_product_message(reminder: Reminder) -> RenderedMessage:
    """One message for a single product."""
    product = reminder.product
    expiry = reminder.record.expiry
    days = reminder.days_left
    html = (
        f"<h3>Heads up! Your <strong>{escape(product)}</strong> is expiring soon</h3>\n"
        f"<p><strong>Expiry Date:</strong> {escape(expiry)}</p>\n"
        f"<p>This product will expire in <strong>{days} day(s)</strong>.</p>\n"
    )
    return RenderedMessage(
        subject=f"Reminder: {product} expires in {days} day(s)",
        html=html,
        products=[product],
    )


def render_summary_message(reminders: list[Reminder]) -> RenderedMessage:
    """One message with a table covering all of a recipient's reminders."""
    rows = "\n".join(
        "    <tr>"
        f"<td>{escape(r.product)}</td>"
        f"<td>{escape(r.record.expiry)}</td>"
        f"<td>{r.days_left}</td>"
        "</tr>"
        for r in reminders
    )
    count = len(reminders)
    noun = "product" if count == 1 else "products"
    html = (
        f"<h3>You have {count} {noun} expiring soon</h3>\n"
        '<table border="1" cellpadding="6" cellspacing="0">\n'
        "  <thead>\n"
        "    <tr><th>Product</th><th>Expiry Date</th><th>Days Left</th></tr>\n"
        "  </thead>\n"
        "  <tbody>\n"
        f"{rows}\n"
        "  </tbody>\n"
        "</table>\n"
    )
    return RenderedMessage(
        subject=f"Reminder: {count} {noun} expiring soon",
        html=html,
        products=[r.product for r in reminders],
    )


def render_messages(reminders: list[Reminder], grouped: bool = True) -> list[RenderedMessage]:
    if not reminders:
        return []
    if grouped:
        return [render_summary_message(reminders)]
    return [render_product_message(r) for r in reminders]
