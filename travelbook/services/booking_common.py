"""Helpers shared by the tour and vehicle booking services."""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.booking.enums import BookingStatus, ResourceKind
from travelbook.booking.errors import BookingError, Conflict, CouponIneligible, NotFound
from travelbook.booking.policies import RefundQuote
from travelbook.booking.pricing import (
    ZERO,
    AppliedDiscount,
    PriceSnapshot,
    coupon_discount,
    long_term_discount,
    money,
)
from travelbook.config import settings
from travelbook.database import unit_of_work
from travelbook.models.booking import TourBooking, VehicleBooking
from travelbook.models.pricing_rule import Coupon
from travelbook.services.catalog import CatalogReader

logger = logging.getLogger(__name__)

BookingModel = type[TourBooking] | type[VehicleBooking]
AnyBooking = TourBooking | VehicleBooking


@dataclass(frozen=True)
class CancellationResult:
    booking: AnyBooking
    refund: RefundQuote


@dataclass(frozen=True)
class RescheduleResult:
    booking: TourBooking
    previous_total: Decimal
    price_difference: Decimal


def utcnow() -> datetime:
    """Current time as naive UTC, the convention for every stored timestamp."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_coupon_code(code: str | None) -> str | None:
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


def mark_cancelled(booking: AnyBooking, *, now: datetime, reason: str | None, actor: str | None) -> None:
    booking.status = BookingStatus.CANCELLED.value
    booking.cancelled_at = now
    booking.cancellation_reason = reason
    booking.cancelled_by = actor


@asynccontextmanager
async def booking_transaction(db: AsyncSession, action: str) -> AsyncIterator[None]:
    """Unit of work for one lifecycle operation.

    Business-rule errors roll back and propagate unchanged. A violated
    constraint rolls back as a non-retryable ``Conflict``; other database
    errors (serialization failures, lock timeouts) roll back as a retryable
    ``Conflict``.
    """
    try:
        async with unit_of_work(db):
            yield
    except BookingError:
        raise
    except IntegrityError as exc:
        logger.warning("%s rolled back after constraint violation: %s", action, exc.orig or exc)
        raise Conflict(
            f"Could not {action} because it would violate a data constraint",
            details={"retryable": False},
        ) from exc
    except DBAPIError as exc:
        logger.warning("%s rolled back after database error: %s", action, exc.orig or exc)
        raise Conflict(
            f"Could not {action} because of a concurrent change; please retry",
            details={"retryable": True},
        ) from exc


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


async def count_user_redemptions(
    db: AsyncSession,
    user_id: uuid.UUID,
    code: str,
    exclude_booking_id: uuid.UUID | None = None,
) -> int:
    """How many of the user's non-cancelled tour and vehicle bookings carry the coupon.

    Coupons are shared by both booking types, so the per-user limit counts
    across both tables.
    """
    total = 0
    for model in (TourBooking, VehicleBooking):
        query = select(func.count()).select_from(model).where(
            model.user_id == user_id,
            model.coupon_code == code,
            model.status != BookingStatus.CANCELLED.value,
        )
        if exclude_booking_id is not None:
            query = query.where(model.id != exclude_booking_id)
        result = await db.execute(query)
        total += result.scalar_one()
    return total


async def redeem_coupon(db: AsyncSession, code: str) -> None:
    """Count one use of the coupon, atomically respecting its usage limit."""
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.code == code,
            (Coupon.usage_limit.is_(None)) | (Coupon.usage_count < Coupon.usage_limit),
        )
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning("Coupon %s redemption rejected: usage limit reached", code)
        raise CouponIneligible("This coupon has reached its usage limit.", details={"code": code})


async def release_coupon(db: AsyncSession, code: str) -> None:
    await db.execute(
        update(Coupon)
        .where(Coupon.code == code)
        .values(usage_count=case((Coupon.usage_count > 0, Coupon.usage_count - 1), else_=0))
        .execution_options(synchronize_session=False)
    )


async def swap_coupon(db: AsyncSession, old_code: str | None, new_code: str | None) -> None:
    """Move a booking's coupon usage from ``old_code`` to ``new_code``."""
    if old_code == new_code:
        return
    if old_code:
        await release_coupon(db, old_code)
    if new_code:
        await redeem_coupon(db, new_code)


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------


async def resolve_discounts(
    db: AsyncSession,
    catalog: CatalogReader,
    draft: PriceSnapshot,
    *,
    kind: ResourceKind,
    user_id: uuid.UUID,
    duration_days: int,
    category: str | None,
    coupon_code: str | None,
    now: datetime,
    current_booking_id: uuid.UUID | None = None,
    current_coupon_code: str | None = None,
    promotion: AppliedDiscount | None = None,
) -> PriceSnapshot:
    """Apply coupon, long-term and promotion discounts to a draft snapshot.

    ``current_coupon_code`` is the coupon already held by the booking being
    re-priced; keeping it does not count as a new redemption.
    """
    coupon_applied = None
    if coupon_code:
        coupon = await catalog.coupon_by_code(coupon_code)
        redemptions = await count_user_redemptions(db, user_id, coupon_code, current_booking_id)
        coupon_applied = coupon_discount(
            coupon,
            code=coupon_code,
            gross_amount=draft.gross_amount,
            duration_days=duration_days,
            category=category,
            resource_kind=kind,
            now=now,
            user_redemptions=redemptions,
            already_redeemed=coupon_code == current_coupon_code,
            currency=settings.currency,
        )

    long_term = long_term_discount(
        await catalog.long_term_rules(kind),
        duration_days=duration_days,
        gross_amount=draft.gross_amount,
        min_days=settings.long_term_min_days,
    )
    return draft.with_discounts([coupon_applied, long_term, promotion])


def price_difference(old_total: Decimal, new_total: Decimal) -> Decimal:
    """Signed amount the customer owes (positive) or is owed (negative)."""
    return money(Decimal(new_total) - Decimal(old_total))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def load_booking(
    db: AsyncSession,
    model: BookingModel,
    booking_id: uuid.UUID,
    *,
    owner_id: uuid.UUID | None = None,
    for_update: bool = False,
) -> AnyBooking:
    """Fetch a booking, optionally restricted to its owner and row-locked.

    Another user's booking is reported as missing rather than forbidden.
    """
    query = select(model).where(model.id == booking_id)
    if owner_id is not None:
        query = query.where(model.user_id == owner_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found", details={"booking_id": str(booking_id)})
    return booking


async def list_bookings(
    db: AsyncSession,
    model: BookingModel,
    *,
    user_id: uuid.UUID | None = None,
    status: BookingStatus | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[AnyBooking], int]:
    """Return one page of bookings (newest first) and the total match count."""
    base_query = select(model)
    count_query = select(func.count()).select_from(model)
    if user_id is not None:
        base_query = base_query.where(model.user_id == user_id)
        count_query = count_query.where(model.user_id == user_id)
    if status is not None:
        base_query = base_query.where(model.status == status.value)
        count_query = count_query.where(model.status == status.value)

    total_result = await db.execute(count_query)
    total = total_result.scalar_one()

    result = await db.execute(base_query.order_by(model.created_at.desc()).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def booking_stats(db: AsyncSession, model: BookingModel) -> dict:
    """Counts per status and revenue from every booking that was not cancelled."""
    result = await db.execute(
        select(model.status, func.count(), func.coalesce(func.sum(model.total_price), 0)).group_by(model.status)
    )
    by_status = {s.value: 0 for s in BookingStatus}
    revenue = ZERO
    for status, count, amount in result.all():
        by_status[status] = count
        if status != BookingStatus.CANCELLED.value:
            revenue += Decimal(str(amount))
    return {
        "total_bookings": sum(by_status.values()),
        "by_status": by_status,
        "revenue": money(revenue),
    }
