"""Pydantic v2 schemas shared by the tour and vehicle booking endpoints."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field

from travelbook.booking.enums import BookingStatus


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalise an incoming datetime to naive UTC, the storage convention."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CancelRequest(BaseModel):
    """Optional reason given when cancelling a booking."""

    reason: str | None = Field(None, max_length=1000)


class StatusUpdate(BaseModel):
    """Administrative status change."""

    status: BookingStatus
    reason: str | None = Field(None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AppliedDiscountResponse(BaseModel):
    source: str
    value_type: str
    value: Decimal
    amount: Decimal
    code: str | None = None


class RefundResponse(BaseModel):
    """Refund owed under the cancellation policy."""

    days_until_start: int
    percentage: int
    amount: Decimal
    policy: str
    reason: str


class BookingStatsResponse(BaseModel):
    total_bookings: int
    by_status: dict[str, int]
    revenue: Decimal
