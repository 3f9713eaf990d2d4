"""Booking lifecycle policies: status transitions and the cancellation refund table."""

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from travelbook.booking.enums import BookingStatus
from travelbook.booking.errors import InvalidState
from travelbook.booking.pricing import money

# Forward progression; admins may jump ahead but never move backwards.
FORWARD_ORDER: tuple[BookingStatus, ...] = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.ACTIVE,
    BookingStatus.COMPLETED,
)

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Bookings in these states hold capacity on their resource.
IN_FLIGHT_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE})

UPDATABLE_STATUSES = frozenset({BookingStatus.PENDING})
RESCHEDULABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def ensure_updatable(status: BookingStatus) -> None:
    if status not in UPDATABLE_STATUSES:
        raise InvalidState(
            f"Only pending bookings can be modified; this booking is {status.value}",
            details={"status": status.value},
        )


def ensure_reschedulable(status: BookingStatus) -> None:
    if status not in RESCHEDULABLE_STATUSES:
        raise InvalidState(
            f"Only pending or confirmed bookings can be rescheduled; this booking is {status.value}",
            details={"status": status.value},
        )


def ensure_cancellable(status: BookingStatus) -> None:
    """Self-service cancellation is allowed from any non-terminal state."""
    if status == BookingStatus.CANCELLED:
        raise InvalidState("Booking already cancelled", details={"status": status.value})
    if status == BookingStatus.COMPLETED:
        raise InvalidState("Cannot cancel completed booking", details={"status": status.value})


def ensure_admin_transition(current: BookingStatus, target: BookingStatus) -> None:
    """Validate an administrative status change.

    Terminal bookings are frozen. Otherwise the target must be ``cancelled``
    or a state strictly later in the forward progression.
    """
    if current in TERMINAL_STATUSES:
        raise InvalidState(
            f"Booking is already {current.value}; its status can no longer change",
            details={"status": current.value, "requested_status": target.value},
        )
    if target == current:
        raise InvalidState(
            f"Booking is already {current.value}",
            details={"status": current.value, "requested_status": target.value},
        )
    if target == BookingStatus.CANCELLED:
        return
    if FORWARD_ORDER.index(target) < FORWARD_ORDER.index(current):
        raise InvalidState(
            f"Cannot move a booking back from {current.value} to {target.value}",
            details={"status": current.value, "requested_status": target.value},
        )


# ---------------------------------------------------------------------------
# Cancellation refunds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RefundBand:
    """One step of the cancellation refund table."""

    min_days_before_start: int
    percentage: int
    policy: str
    reason: str


# Ordered from most to least generous; the first band whose threshold is met applies.
CANCELLATION_POLICY: tuple[RefundBand, ...] = (
    RefundBand(
        min_days_before_start=7,
        percentage=90,
        policy="CANCEL_7_DAYS_BEFORE",
        reason="Booking cancelled 7 or more days before start. Eligible for 90% refund.",
    ),
    RefundBand(
        min_days_before_start=3,
        percentage=50,
        policy="CANCEL_3_TO_6_DAYS",
        reason="Booking cancelled 3-6 days before start. Eligible for 50% refund.",
    ),
    RefundBand(
        min_days_before_start=1,
        percentage=25,
        policy="CANCEL_1_TO_2_DAYS",
        reason="Booking cancelled 1-2 days before start. Eligible for 25% refund.",
    ),
)

NO_REFUND = RefundBand(
    min_days_before_start=0,
    percentage=0,
    policy="NO_REFUND",
    reason="Booking cancelled on or after the start date. No refund applicable.",
)


@dataclass(frozen=True)
class RefundQuote:
    days_until_start: int
    percentage: int
    amount: Decimal
    policy: str
    reason: str


def days_until(start: datetime, now: datetime) -> int:
    """Whole days until ``start``, rounding any partial day up."""
    return math.ceil((start - now).total_seconds() / 86400)


def refund_for_cancellation(total_price: Decimal, start: datetime, now: datetime) -> RefundQuote:
    """Compute the refund owed when a booking starting at ``start`` is cancelled at ``now``."""
    remaining_days = days_until(start, now)
    band = next(
        (b for b in CANCELLATION_POLICY if remaining_days >= b.min_days_before_start),
        NO_REFUND,
    )
    amount = money(Decimal(total_price) * band.percentage / 100)
    return RefundQuote(
        days_until_start=remaining_days,
        percentage=band.percentage,
        amount=amount,
        policy=band.policy,
        reason=band.reason,
    )
