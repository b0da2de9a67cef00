"""Validation of raw product documents."""
from typing import Optional

from expiry_reminder.evaluate.expiry import parse_expiry, parse_remind_before
from expiry_reminder.evaluate.models import ProductDocument, ProductRecord


def validate_document(
    doc: ProductDocument,
    require_remind_before: bool = False,
) -> tuple[Optional[ProductRecord], Optional[str]]:
    """Check a document. Returns (record, None) or (None, skip_reason)."""
    if not doc.product:
        return None, "missing product"
    if not doc.expiry:
        return None, "missing expiry"
    if not doc.owner:
        return None, "missing owner"
    if require_remind_before and not doc.remind_before:
        return None, "missing remindBefore"

    expires_at = parse_expiry(doc.expiry)
    if expires_at is None:
        return None, "invalid expiry"

    remind_before = parse_remind_before(doc.remind_before)
    if require_remind_before and remind_before is None:
        return None, "invalid remindBefore"

    record = ProductRecord(
        id=doc.id,
        product=doc.product,
        expiry=doc.expiry,
        expires_at=expires_at,
        owner=doc.owner,
        remind_before=remind_before,
    )
    return record, None
