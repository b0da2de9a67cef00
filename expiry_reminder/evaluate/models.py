"""Data models for tracked products and sweep results."""
from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductDocument(BaseModel):
    """A product document as stored. Every field may be missing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, description="Document id in the store")
    product: Optional[str] = None
    expiry: Optional[str] = None
    owner: Optional[str] = None
    remind_before: Optional[str] = Field(default=None, alias="remindBefore")

    @field_validator("id", "product", "expiry", "owner", "remind_before", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        text = str(value).strip()
        return text or None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ProductDocument":
        """Build from a store row, accepting both remindBefore and remind_before."""
        return cls.model_validate(row)


class ProductRecord(BaseModel):
    """A validated product, safe to evaluate."""

    id: Optional[str] = None
    product: str
    expiry: str = Field(..., description="Expiry as stored, used for display")
    expires_at: datetime
    owner: str
    remind_before: Optional[int] = None


class Reminder(BaseModel):
    """A product that is due for a reminder today."""

    record: ProductRecord
    days_left: int

    @property
    def owner(self) -> str:
        return self.record.owner

    @property
    def product(self) -> str:
        return self.record.product


class RunState(BaseModel):
    """Date of the last marked sweep."""

    date: str = Field(..., description="YYYY-MM-DD")


class NotificationOutcome(BaseModel):
    """Result of one message dispatch."""

    recipient: str
    products: list[str] = Field(default_factory=list)
    subject: str = ""
    sent: bool = False
    error: Optional[str] = None


class SweepResult(BaseModel):
    """Summary of one sweep."""

    status: str = Field(..., description="completed or skipped")
    run_date: str
    scanned: int = 0
    skipped: int = 0
    matched: int = 0
    outcomes: list[NotificationOutcome] = Field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.sent)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.sent)
