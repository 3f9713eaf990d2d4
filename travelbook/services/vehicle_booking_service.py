"""Vehicle booking lifecycle: rentals over an explicit start/end interval.

Availability is counted live from overlapping in-flight bookings while the
vehicle row is locked, so concurrent rentals of the same vehicle serialize on
that lock and can never jointly exceed its fleet size.
"""

import logging
import math
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.booking.codes import generate_booking_code
from travelbook.booking.enums import AddOnPricingType, BookingStatus, ResourceKind
from travelbook.booking.errors import NotFound, ValidationError
from travelbook.booking.policies import (
    IN_FLIGHT_STATUSES,
    ensure_admin_transition,
    ensure_cancellable,
    ensure_updatable,
    refund_for_cancellation,
)
from travelbook.booking.pricing import (
    ZERO,
    AddOnQuote,
    AddOnRates,
    AddOnSelection,
    PriceSnapshot,
    money,
    pick_seasonal_multiplier,
    price_booking,
    quote_addon,
)
from travelbook.config import settings
from travelbook.models.booking import VehicleBooking
from travelbook.models.catalog import Vehicle
from travelbook.services.availability import (
    Availability,
    adjust_reserved_units,
    check_vehicle_capacity,
    ensure_vehicle_capacity,
)
from travelbook.services.booking_common import (
    CancellationResult,
    booking_transaction,
    load_booking,
    mark_cancelled,
    normalize_coupon_code,
    resolve_discounts,
    swap_coupon,
    utcnow,
)
from travelbook.services.catalog import CatalogReader

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)

UPDATABLE_FIELDS = frozenset(
    {
        "start_date",
        "end_date",
        "number_of_vehicles",
        "needs_driver",
        "number_of_drivers",
        "driver_pricing_type",
        "trip_type",
        "destination",
        "pickup_location",
        "dropoff_location",
        "special_requests",
        "coupon_code",
        "advance_amount",
    }
)
_DETAIL_FIELDS = ("trip_type", "destination", "pickup_location", "dropoff_location", "special_requests")


def rental_days(start: datetime, end: datetime) -> int:
    """Whole days covered by ``[start, end]``; any partial day counts as a full one."""
    if end <= start:
        raise ValidationError(
            "End date must be after start date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    return math.ceil((end - start) / DAY)


class VehicleBookingService:
    """Lifecycle manager for vehicle rentals."""

    def __init__(
        self,
        db: AsyncSession,
        catalog: CatalogReader | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.catalog = catalog or CatalogReader(db)
        self.clock = clock

    async def get(self, booking_id: uuid.UUID, *, owner_id: uuid.UUID | None = None) -> VehicleBooking:
        return await load_booking(self.db, VehicleBooking, booking_id, owner_id=owner_id)

    async def check_availability(
        self, vehicle_id: uuid.UUID, start: datetime, end: datetime, quantity: int = 1
    ) -> Availability:
        rental_days(start, end)
        vehicle = await self.catalog.get_vehicle(vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle not found", details={"vehicle_id": str(vehicle_id)})
        return await check_vehicle_capacity(self.db, vehicle, start, end, quantity)

    async def create(
        self,
        *,
        user_id: uuid.UUID,
        vehicle_id: uuid.UUID,
        start_date: datetime,
        end_date: datetime,
        number_of_vehicles: int = 1,
        needs_driver: bool = False,
        number_of_drivers: int = 0,
        driver_pricing_type: str | None = None,
        trip_type: str | None = None,
        destination: str | None = None,
        pickup_location: str | None = None,
        dropoff_location: str | None = None,
        special_requests: str | None = None,
        coupon_code: str | None = None,
        advance_amount: Decimal = ZERO,
    ) -> VehicleBooking:
        now = self.clock()
        coupon_code = normalize_coupon_code(coupon_code)
        duration = rental_days(start_date, end_date)
        self._ensure_not_in_past(start_date, now)

        async with booking_transaction(self.db, "create the booking"):
            vehicle = await self.catalog.require_active_vehicle(vehicle_id, for_update=True)
            self._ensure_unit_bounds(vehicle, number_of_vehicles)
            await ensure_vehicle_capacity(self.db, vehicle, start_date, end_date, number_of_vehicles)

            driver = self._driver_selection(needs_driver, driver_pricing_type, number_of_drivers)
            snapshot = await self._price(
                vehicle,
                user_id=user_id,
                start=start_date,
                end=end_date,
                duration=duration,
                units=number_of_vehicles,
                driver=driver,
                trip_type=trip_type,
                coupon_code=coupon_code,
                now=now,
            )
            advance = self._ensure_advance(snapshot, advance_amount)

            await swap_coupon(self.db, None, snapshot.coupon_code)
            await adjust_reserved_units(self.db, vehicle.id, number_of_vehicles)

            booking = VehicleBooking(
                booking_code=generate_booking_code(settings.vehicle_booking_code_prefix),
                user_id=user_id,
                vehicle_id=vehicle.id,
                start_date=start_date,
                end_date=end_date,
                duration_days=duration,
                number_of_vehicles=number_of_vehicles,
                trip_type=trip_type,
                destination=destination,
                pickup_location=pickup_location,
                dropoff_location=dropoff_location,
                special_requests=special_requests,
                status=BookingStatus.PENDING.value,
            )
            self._apply_snapshot(booking, snapshot, advance)
            self.db.add(booking)
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info(
            "Vehicle booking %s created: vehicle=%s units=%d days=%d total=%s",
            booking.booking_code,
            booking.vehicle_id,
            booking.number_of_vehicles,
            booking.duration_days,
            booking.total_price,
        )
        return booking

    async def update(
        self,
        booking_id: uuid.UUID,
        changes: dict[str, Any],
        *,
        owner_id: uuid.UUID | None = None,
    ) -> VehicleBooking:
        """Change dates, units, driver, coupon or trip details of a pending rental.

        Capacity is re-checked for the new interval with this booking's own
        units excluded, and the price snapshot is recomputed in full.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                "These fields cannot be changed on a vehicle booking", details={"fields": sorted(unknown)}
            )
        now = self.clock()

        async with booking_transaction(self.db, "update the booking"):
            booking = await load_booking(self.db, VehicleBooking, booking_id, owner_id=owner_id, for_update=True)
            ensure_updatable(booking.booking_status)

            start = changes.get("start_date") or booking.start_date
            end = changes.get("end_date") or booking.end_date
            duration = rental_days(start, end)
            if start != booking.start_date:
                self._ensure_not_in_past(start, now)
            units = changes.get("number_of_vehicles") or booking.number_of_vehicles

            vehicle = await self.catalog.require_active_vehicle(booking.vehicle_id, for_update=True)
            self._ensure_unit_bounds(vehicle, units)
            await ensure_vehicle_capacity(self.db, vehicle, start, end, units, exclude_booking_id=booking.id)

            driver = None
            if changes.get("needs_driver", booking.needs_driver):
                driver = self._driver_selection(
                    True,
                    changes.get("driver_pricing_type", booking.driver_pricing_type),
                    changes.get("number_of_drivers", booking.number_of_drivers),
                )
            trip_type = changes.get("trip_type", booking.trip_type)
            if "coupon_code" in changes:
                coupon_code = normalize_coupon_code(changes["coupon_code"])
            else:
                coupon_code = booking.coupon_code

            snapshot = await self._price(
                vehicle,
                user_id=booking.user_id,
                start=start,
                end=end,
                duration=duration,
                units=units,
                driver=driver,
                trip_type=trip_type,
                coupon_code=coupon_code,
                now=now,
                booking=booking,
            )
            advance = self._ensure_advance(snapshot, changes.get("advance_amount", booking.advance_amount))

            await swap_coupon(self.db, booking.coupon_code, snapshot.coupon_code)
            await adjust_reserved_units(self.db, vehicle.id, units - booking.number_of_vehicles)

            booking.start_date = start
            booking.end_date = end
            booking.duration_days = duration
            booking.number_of_vehicles = units
            for field in _DETAIL_FIELDS:
                if field in changes:
                    setattr(booking, field, changes[field])
            self._apply_snapshot(booking, snapshot, advance)
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info(
            "Vehicle booking %s updated: units=%d days=%d total=%s",
            booking.booking_code,
            booking.number_of_vehicles,
            booking.duration_days,
            booking.total_price,
        )
        return booking

    async def cancel(
        self,
        booking_id: uuid.UUID,
        *,
        owner_id: uuid.UUID | None = None,
        reason: str | None = None,
        cancelled_by: str | None = None,
    ) -> CancellationResult:
        now = self.clock()

        async with booking_transaction(self.db, "cancel the booking"):
            booking = await load_booking(self.db, VehicleBooking, booking_id, owner_id=owner_id, for_update=True)
            ensure_cancellable(booking.booking_status)
            refund = refund_for_cancellation(booking.total_price, booking.start_date, now)

            await adjust_reserved_units(self.db, booking.vehicle_id, -booking.number_of_vehicles)
            mark_cancelled(booking, now=now, reason=reason, actor=cancelled_by)
            booking.refund_amount = refund.amount
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info(
            "Vehicle booking %s cancelled: released %d units, refund=%s (%s)",
            booking.booking_code,
            booking.number_of_vehicles,
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
    ) -> VehicleBooking:
        """Administrative transition; leaving the in-flight states frees the units."""
        target = BookingStatus(status)
        now = self.clock()

        async with booking_transaction(self.db, "change the booking status"):
            booking = await load_booking(self.db, VehicleBooking, booking_id, for_update=True)
            previous = booking.booking_status
            ensure_admin_transition(previous, target)

            if previous in IN_FLIGHT_STATUSES and target not in IN_FLIGHT_STATUSES:
                await adjust_reserved_units(self.db, booking.vehicle_id, -booking.number_of_vehicles)
            if target == BookingStatus.CANCELLED:
                mark_cancelled(booking, now=now, reason=reason or "Cancelled by administrator", actor=actor)
            else:
                booking.status = target.value
                if target == BookingStatus.COMPLETED:
                    booking.completed_at = now
            await self.db.flush()

        await self.db.refresh(booking)
        logger.info("Vehicle booking %s status %s -> %s", booking.booking_code, previous.value, target.value)
        return booking

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_not_in_past(start: datetime, now: datetime) -> None:
        if start < now:
            raise ValidationError("Start date cannot be in the past", details={"start_date": start.isoformat()})

    @staticmethod
    def _ensure_unit_bounds(vehicle: Vehicle, units: int) -> None:
        if units < 1:
            raise ValidationError("At least 1 vehicle is required", details={"number_of_vehicles": units})
        if vehicle.min_units_per_booking is not None and units < vehicle.min_units_per_booking:
            raise ValidationError(
                f"Minimum {vehicle.min_units_per_booking} vehicles per booking",
                details={"number_of_vehicles": units, "min_units": vehicle.min_units_per_booking},
            )
        if vehicle.max_units_per_booking is not None and units > vehicle.max_units_per_booking:
            raise ValidationError(
                f"Maximum {vehicle.max_units_per_booking} vehicles per booking",
                details={"number_of_vehicles": units, "max_units": vehicle.max_units_per_booking},
            )

    @staticmethod
    def _driver_selection(
        needs_driver: bool, pricing_type: str | None, number_of_drivers: int | None
    ) -> AddOnSelection | None:
        if not needs_driver:
            return None
        return AddOnSelection(pricing_type or AddOnPricingType.PER_DAY, number_of_drivers)

    @staticmethod
    def _ensure_advance(snapshot: PriceSnapshot, advance_amount: Decimal | None) -> Decimal:
        advance = money(advance_amount or ZERO)
        if advance < ZERO:
            raise ValidationError("Advance amount cannot be negative", details={"advance_amount": str(advance)})
        if advance > snapshot.total_price:
            raise ValidationError(
                "Advance amount cannot exceed the total price",
                details={"advance_amount": str(advance), "total_price": str(snapshot.total_price)},
            )
        return advance

    async def _quote_driver(
        self, selection: AddOnSelection, trip_type: str | None, units: int, duration: int
    ) -> AddOnQuote:
        """Driver rate for the trip type, else the configured default per-day rate without terrain charge."""
        rate = await self.catalog.driver_rate(trip_type)
        if rate is None:
            rates = AddOnRates(per_day=settings.default_driver_rate)
        else:
            rates = AddOnRates(
                per_day=rate.rate_per_day if rate.rate_per_day is not None else settings.default_driver_rate,
                per_person=rate.rate_per_person,
                per_group=rate.rate_per_group,
                minimum_charge=rate.minimum_charge,
                surcharge_multiplier=rate.terrain_multiplier,
            )
        return quote_addon(selection, rates, participants=units, duration_days=duration, label="driver")

    async def _price(
        self,
        vehicle: Vehicle,
        *,
        user_id: uuid.UUID,
        start: datetime,
        end: datetime,
        duration: int,
        units: int,
        driver: AddOnSelection | None,
        trip_type: str | None,
        coupon_code: str | None,
        now: datetime,
        booking: VehicleBooking | None = None,
    ) -> PriceSnapshot:
        rules = await self.catalog.seasonal_rules(ResourceKind.VEHICLE, start.date(), end.date())
        multiplier = pick_seasonal_multiplier(
            rules,
            start=start.date(),
            end=end.date(),
            category=vehicle.vehicle_type,
            region=vehicle.pricing_region,
        )
        addon = await self._quote_driver(driver, trip_type, units, duration) if driver is not None else None
        draft = price_booking(
            unit_price=vehicle.price_per_day,
            quantity=units,
            billable_days=duration,
            seasonal_multiplier=multiplier,
            addon=addon,
        )
        return await resolve_discounts(
            self.db,
            self.catalog,
            draft,
            kind=ResourceKind.VEHICLE,
            user_id=user_id,
            duration_days=duration,
            category=vehicle.vehicle_type,
            coupon_code=coupon_code,
            now=now,
            current_booking_id=booking.id if booking is not None else None,
            current_coupon_code=booking.coupon_code if booking is not None else None,
        )

    @staticmethod
    def _apply_snapshot(booking: VehicleBooking, snapshot: PriceSnapshot, advance: Decimal) -> None:
        booking.seasonal_multiplier = snapshot.seasonal_multiplier
        booking.price_per_day_at_booking = snapshot.unit_price
        booking.base_amount = snapshot.base_amount
        booking.gross_amount = snapshot.gross_amount
        booking.applied_discounts = snapshot.discounts_as_json()
        booking.discount_amount = snapshot.discount_amount
        booking.coupon_code = snapshot.coupon_code
        booking.total_price = snapshot.total_price
        booking.advance_amount = advance
        booking.remaining_amount = snapshot.remaining_after(advance)

        driver = snapshot.addon
        booking.needs_driver = driver is not None
        booking.number_of_drivers = (driver.quantity or 0) if driver else 0
        booking.driver_pricing_type = driver.pricing_type.value if driver else None
        booking.driver_rate_at_booking = driver.rate if driver else None
        booking.driver_minimum_charge = driver.minimum_charge if driver else None
        booking.terrain_charge = driver.surcharge if driver else ZERO
        booking.driver_total_amount = driver.amount if driver else None
