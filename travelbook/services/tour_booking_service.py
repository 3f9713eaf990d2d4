"""Tour booking lifecycle: create, update, reschedule, cancel and admin status changes.

Each operation is one unit of work: the availability check, the price
snapshot, the booking write and the seat-counter adjustment commit together
or not at all.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.booking.codes import generate_booking_code
from travelbook.booking.enums import BookingStatus, ResourceKind
from travelbook.booking.errors import Conflict, ResourceUnavailable, ValidationError
from travelbook.booking.policies import (
    ensure_admin_transition,
    ensure_cancellable,
    ensure_reschedulable,
    ensure_updatable,
    refund_for_cancellation,
)
from travelbook.booking.pricing import (
    AddOnQuote,
    AddOnRates,
    AddOnSelection,
    PriceSnapshot,
    pick_seasonal_multiplier,
    price_booking,
    promotion_discount,
    quote_addon,
)
from travelbook.config import settings
from travelbook.models.booking import TourBooking
from travelbook.models.catalog import Tour, TourSchedule
from travelbook.services.availability import (
    Availability,
    CounterReconciliation,
    check_schedule_capacity,
    claim_seats,
    ensure_schedule_capacity,
    reconcile_schedule_counter,
    release_seats,
)
from travelbook.services.booking_common import (
    CancellationResult,
    RescheduleResult,
    booking_transaction,
    load_booking,
    mark_cancelled,
    normalize_coupon_code,
    price_difference,
    resolve_discounts,
    swap_coupon,
    utcnow,
)
from travelbook.services.catalog import CatalogReader, start_of_day

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset(
    {"number_of_participants", "needs_guide", "guide_pricing_type", "number_of_guides", "coupon_code"}
)


class TourBookingService:
    """Lifecycle manager for seats on scheduled tour departures."""

    def __init__(
        self,
        db: AsyncSession,
        catalog: CatalogReader | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.catalog = catalog or CatalogReader(db)
        self.clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, booking_id: uuid.UUID, *, owner_id: uuid.UUID | None = None) -> TourBooking:
        return await load_booking(self.db, TourBooking, booking_id, owner_id=owner_id)

    async def check_availability(self, schedule_id: uuid.UUID, participants: int = 1) -> Availability:
        return await check_schedule_capacity(self.db, schedule_id, participants)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        user_id: uuid.UUID,
        tour_id: uuid.UUID,
        schedule_id: uuid.UUID,
        number_of_participants: int,
        needs_guide: bool = False,
        guide_pricing_type: str | None = None,
        number_of_guides: int | None = None,
        coupon_code: str | None = None,
    ) -> TourBooking:
        now = self.clock()
        coupon_code = normalize_coupon_code(coupon_code)

        async with booking_transaction(self.db, "create the booking"):
            tour = await self.catalog.require_active_tour(tour_id)
            schedule = await self.catalog.require_schedule(schedule_id)
            self._ensure_schedule_bookable(tour, schedule, now)
            self._ensure_participant_bounds(tour, number_of_participants)
            await ensure_schedule_capacity(self.db, schedule.id, number_of_participants)

            snapshot = await self._price(
                tour,
                schedule,
                user_id=user_id,
                participants=number_of_participants,
                guide=AddOnSelection(guide_pricing_type, number_of_guides) if needs_guide else None,
                coupon_code=coupon_code,
                now=now,
            )

            await claim_seats(self.db, schedule.id, number_of_participants)
            await swap_coupon(self.db, None, snapshot.coupon_code)

            booking = TourBooking(
                booking_code=generate_booking_code(settings.tour_booking_code_prefix),
                user_id=user_id,
                tour_id=tour.id,
                schedule_id=schedule.id,
                destination_id=tour.destination_id,
                number_of_participants=number_of_participants,
                status=BookingStatus.PENDING.value,
            )
            self._apply_snapshot(booking, snapshot)
            self.db.add(booking)
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info(
            "Tour booking %s created: schedule=%s participants=%d total=%s",
            booking.booking_code,
            booking.schedule_id,
            booking.number_of_participants,
            booking.total_price,
        )
        return booking

    async def update(
        self,
        booking_id: uuid.UUID,
        changes: dict[str, Any],
        *,
        owner_id: uuid.UUID | None = None,
    ) -> TourBooking:
        """Change participants, guide selection or coupon of a pending booking.

        ``changes`` holds only the fields the caller set; a ``None`` coupon
        code removes the coupon. The price snapshot is recomputed in full and
        the seat counter moves by the signed participant delta.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                "These fields cannot be changed on a tour booking", details={"fields": sorted(unknown)}
            )
        now = self.clock()

        async with booking_transaction(self.db, "update the booking"):
            booking = await load_booking(self.db, TourBooking, booking_id, owner_id=owner_id, for_update=True)
            ensure_updatable(booking.booking_status)
            tour = await self.catalog.require_active_tour(booking.tour_id)
            schedule = await self.catalog.require_schedule(booking.schedule_id)

            participants = changes.get("number_of_participants") or booking.number_of_participants
            self._ensure_participant_bounds(tour, participants)
            delta = participants - booking.number_of_participants
            if delta > 0:
                await ensure_schedule_capacity(self.db, schedule.id, delta)

            needs_guide = changes.get("needs_guide", booking.needs_guide)
            guide = None
            if needs_guide:
                guide = AddOnSelection(
                    changes.get("guide_pricing_type", booking.guide_pricing_type),
                    changes.get("number_of_guides", booking.number_of_guides),
                )
            if "coupon_code" in changes:
                coupon_code = normalize_coupon_code(changes["coupon_code"])
            else:
                coupon_code = booking.coupon_code

            snapshot = await self._price(
                tour,
                schedule,
                user_id=booking.user_id,
                participants=participants,
                guide=guide,
                coupon_code=coupon_code,
                now=now,
                booking=booking,
            )

            if delta > 0:
                await claim_seats(self.db, schedule.id, delta)
            elif delta < 0:
                await release_seats(self.db, schedule.id, -delta)
            await swap_coupon(self.db, booking.coupon_code, snapshot.coupon_code)

            booking.number_of_participants = participants
            self._apply_snapshot(booking, snapshot)
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info(
            "Tour booking %s updated: participants=%d (delta %+d) total=%s",
            booking.booking_code,
            booking.number_of_participants,
            delta,
            booking.total_price,
        )
        return booking

    async def reschedule(
        self,
        booking_id: uuid.UUID,
        new_schedule_id: uuid.UUID,
        *,
        owner_id: uuid.UUID | None = None,
    ) -> RescheduleResult:
        """Move a booking to another departure of the same tour.

        The guide selection and coupon are carried over; only the schedule
        and therefore the price basis change.
        """
        now = self.clock()

        async with booking_transaction(self.db, "reschedule the booking"):
            booking = await load_booking(self.db, TourBooking, booking_id, owner_id=owner_id, for_update=True)
            ensure_reschedulable(booking.booking_status)
            if new_schedule_id == booking.schedule_id:
                raise Conflict(
                    "Booking is already on this schedule",
                    details={"schedule_id": str(new_schedule_id)},
                )

            tour = await self.catalog.require_active_tour(booking.tour_id)
            schedule = await self.catalog.require_schedule(new_schedule_id)
            self._ensure_schedule_bookable(tour, schedule, now)
            participants = booking.number_of_participants
            await ensure_schedule_capacity(self.db, schedule.id, participants)

            guide = None
            if booking.needs_guide:
                guide = AddOnSelection(booking.guide_pricing_type, booking.number_of_guides)
            snapshot = await self._price(
                tour,
                schedule,
                user_id=booking.user_id,
                participants=participants,
                guide=guide,
                coupon_code=booking.coupon_code,
                now=now,
                booking=booking,
            )

            previous_schedule_id = booking.schedule_id
            previous_total = booking.total_price
            await release_seats(self.db, previous_schedule_id, participants)
            await claim_seats(self.db, schedule.id, participants)
            await swap_coupon(self.db, booking.coupon_code, snapshot.coupon_code)

            booking.schedule_id = schedule.id
            self._apply_snapshot(booking, snapshot)
            await self.db.flush()

        await self.db.refresh(booking)
        difference = price_difference(previous_total, booking.total_price)
        logger.info(
            "Tour booking %s rescheduled: %s -> %s participants=%d price difference=%s",
            booking.booking_code,
            previous_schedule_id,
            booking.schedule_id,
            participants,
            difference,
        )
        return RescheduleResult(booking=booking, previous_total=previous_total, price_difference=difference)

    async def cancel(
        self,
        booking_id: uuid.UUID,
        *,
        owner_id: uuid.UUID | None = None,
        reason: str | None = None,
        cancelled_by: str | None = None,
    ) -> CancellationResult:
        """Cancel on the requester's behalf, refund by the time left before departure."""
        now = self.clock()

        async with booking_transaction(self.db, "cancel the booking"):
            # The row lock makes a concurrent second cancel wait, then see CANCELLED.
            booking = await load_booking(self.db, TourBooking, booking_id, owner_id=owner_id, for_update=True)
            ensure_cancellable(booking.booking_status)
            schedule = await self.catalog.require_schedule(booking.schedule_id)
            refund = refund_for_cancellation(booking.total_price, start_of_day(schedule.start_date), now)

            await release_seats(self.db, booking.schedule_id, booking.number_of_participants)
            mark_cancelled(booking, now=now, reason=reason, actor=cancelled_by)
            booking.refund_amount = refund.amount
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info(
            "Tour booking %s cancelled: released %d seats, refund=%s (%s)",
            booking.booking_code,
            booking.number_of_participants,
            refund.amount,
            refund.policy,
        )
        return CancellationResult(booking=booking, refund=refund)

    async def set_status(
        self,
        booking_id: uuid.UUID,
        status: BookingStatus | str,
        *,
        actor: str | None = None,
        reason: str | None = None,
    ) -> TourBooking:
        """Administrative transition; cancelling releases the seats exactly once."""
        target = BookingStatus(status)
        now = self.clock()

        async with booking_transaction(self.db, "change the booking status"):
            booking = await load_booking(self.db, TourBooking, booking_id, for_update=True)
            previous = booking.booking_status
            ensure_admin_transition(previous, target)

            if target == BookingStatus.CANCELLED:
                await release_seats(self.db, booking.schedule_id, booking.number_of_participants)
                mark_cancelled(booking, now=now, reason=reason or "Cancelled by administrator", actor=actor)
            else:
                booking.status = target.value
                if target == BookingStatus.COMPLETED:
                    booking.completed_at = now
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info("Tour booking %s status %s -> %s", booking.booking_code, previous.value, target.value)
        return booking

    async def reconcile_counter(self, schedule_id: uuid.UUID) -> CounterReconciliation:
        async with booking_transaction(self.db, "reconcile the schedule"):
            reconciliation = await reconcile_schedule_counter(self.db, schedule_id)
        logger.info(
            "Schedule %s reconciled: %d -> %d", schedule_id, reconciliation.previous, reconciliation.current
        )
        return reconciliation

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_schedule_bookable(self, tour: Tour, schedule: TourSchedule, now: datetime) -> None:
        if schedule.tour_id != tour.id:
            raise ValidationError(
                "Schedule does not belong to this tour",
                details={"tour_id": str(tour.id), "schedule_id": str(schedule.id)},
            )
        if not schedule.is_active:
            raise ResourceUnavailable(
                "Schedule is not available for booking", details={"schedule_id": str(schedule.id)}
            )
        if start_of_day(schedule.start_date) <= now:
            raise ValidationError(
                "Cannot book a schedule that has already started",
                details={"schedule_id": str(schedule.id), "start_date": schedule.start_date.isoformat()},
            )

    def _ensure_participant_bounds(self, tour: Tour, participants: int) -> None:
        if participants < 1:
            raise ValidationError("At least 1 participant is required", details={"participants": participants})
        if tour.min_participants is not None and participants < tour.min_participants:
            raise ValidationError(
                f"Minimum {tour.min_participants} participants required",
                details={"participants": participants, "min_participants": tour.min_participants},
            )
        if tour.max_participants is not None and participants > tour.max_participants:
            raise ValidationError(
                f"Maximum {tour.max_participants} participants allowed",
                details={"participants": participants, "max_participants": tour.max_participants},
            )

    async def _quote_guide(self, tour: Tour, selection: AddOnSelection, participants: int) -> AddOnQuote:
        pricing = await self.catalog.guide_pricing_for_tour(tour.id)
        if pricing is None:
            raise ResourceUnavailable(
                "Guide service is not available for this tour", details={"tour_id": str(tour.id)}
            )
        if pricing.maximum_group_size is not None and participants > pricing.maximum_group_size:
            raise ValidationError(
                f"A guided group can have at most {pricing.maximum_group_size} participants",
                details={"participants": participants, "maximum_group_size": pricing.maximum_group_size},
            )
        rates = AddOnRates(
            per_day=pricing.price_per_day,
            per_person=pricing.price_per_person,
            per_group=pricing.price_per_group,
            minimum_charge=pricing.minimum_charge,
        )
        return quote_addon(
            selection,
            rates,
            participants=participants,
            duration_days=tour.number_of_days,
            label="guide",
        )

    async def _price(
        self,
        tour: Tour,
        schedule: TourSchedule,
        *,
        user_id: uuid.UUID,
        participants: int,
        guide: AddOnSelection | None,
        coupon_code: str | None,
        now: datetime,
        booking: TourBooking | None = None,
    ) -> PriceSnapshot:
        rules = await self.catalog.seasonal_rules(ResourceKind.TOUR, schedule.start_date, schedule.end_date)
        multiplier = pick_seasonal_multiplier(
            rules,
            start=schedule.start_date,
            end=schedule.end_date,
            category=tour.tour_type,
            region=tour.region,
        )
        addon = await self._quote_guide(tour, guide, participants) if guide is not None else None
        draft = price_booking(
            unit_price=schedule.price,
            quantity=participants,
            seasonal_multiplier=multiplier,
            addon=addon,
        )
        promotion = promotion_discount(
            discount_active=tour.discount_active,
            discount_rate=tour.discount_rate,
            discount_amount=tour.discount_amount,
            gross_amount=draft.gross_amount,
        )
        return await resolve_discounts(
            self.db,
            self.catalog,
            draft,
            kind=ResourceKind.TOUR,
            user_id=user_id,
            duration_days=tour.number_of_days,
            category=tour.tour_type,
            coupon_code=coupon_code,
            now=now,
            current_booking_id=booking.id if booking is not None else None,
            current_coupon_code=booking.coupon_code if booking is not None else None,
            promotion=promotion,
        )

    @staticmethod
    def _apply_snapshot(booking: TourBooking, snapshot: PriceSnapshot) -> None:
        """Replace every price field on the booking with the fresh snapshot."""
        booking.seasonal_multiplier = snapshot.seasonal_multiplier
        booking.price_per_participant_at_booking = snapshot.unit_price
        booking.base_amount = snapshot.base_amount
        booking.gross_amount = snapshot.gross_amount
        booking.applied_discounts = snapshot.discounts_as_json()
        booking.discount_amount = snapshot.discount_amount
        booking.coupon_code = snapshot.coupon_code
        booking.total_price = snapshot.total_price
        booking.price_per_participant = snapshot.per_unit_total()

        guide = snapshot.addon
        booking.needs_guide = guide is not None
        booking.guide_pricing_type = guide.pricing_type.value if guide else None
        booking.number_of_guides = guide.quantity if guide else None
        booking.guide_rate_at_booking = guide.rate if guide else None
        booking.guide_minimum_charge = guide.minimum_charge if guide else None
        booking.guide_total_price = guide.amount if guide else None
