"""Availability checker: remaining capacity for schedules and vehicles.

Tours keep a seat counter on the schedule (``current_bookings``). Seats are
claimed with a single compare-and-increment statement, so two concurrent
bookings can never both take the last seats even if both passed the
preliminary check.

Vehicles are counted live: the units held by in-flight bookings overlapping
the requested interval are summed while the vehicle row is locked.

All functions run on the caller's session and therefore inside the caller's
unit of work.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.booking.enums import BookingStatus
from travelbook.booking.errors import CapacityExceeded, Conflict, NotFound
from travelbook.booking.policies import IN_FLIGHT_STATUSES
from travelbook.models.booking import TourBooking, VehicleBooking
from travelbook.models.catalog import TourSchedule, Vehicle

logger = logging.getLogger(__name__)

_IN_FLIGHT = [s.value for s in IN_FLIGHT_STATUSES]


@dataclass(frozen=True)
class Availability:
    available: int
    requested: int

    @property
    def sufficient(self) -> bool:
        return self.available >= self.requested


# ---------------------------------------------------------------------------
# Tour schedules (seat counter)
# ---------------------------------------------------------------------------


async def remaining_seats(db: AsyncSession, schedule_id: uuid.UUID) -> int:
    """Read the schedule's remaining seats straight from the database."""
    result = await db.execute(
        select(TourSchedule.available_seats - TourSchedule.current_bookings).where(TourSchedule.id == schedule_id)
    )
    remaining = result.scalar_one_or_none()
    if remaining is None:
        raise NotFound("Schedule not found", details={"schedule_id": str(schedule_id)})
    return max(remaining, 0)


async def check_schedule_capacity(db: AsyncSession, schedule_id: uuid.UUID, requested: int) -> Availability:
    return Availability(available=await remaining_seats(db, schedule_id), requested=requested)


async def ensure_schedule_capacity(db: AsyncSession, schedule_id: uuid.UUID, requested: int) -> Availability:
    availability = await check_schedule_capacity(db, schedule_id, requested)
    if not availability.sufficient:
        raise CapacityExceeded(availability.available, requested, unit="seats")
    return availability


async def claim_seats(db: AsyncSession, schedule_id: uuid.UUID, quantity: int) -> None:
    """Atomically add ``quantity`` to the schedule's booked seats.

    The increment only happens if it keeps the schedule within capacity; if
    a concurrent booking got there first no row matches and the claim fails
    with the remaining count as it is now.
    """
    if quantity <= 0:
        return
    result = await db.execute(
        update(TourSchedule)
        .where(
            TourSchedule.id == schedule_id,
            TourSchedule.current_bookings + quantity <= TourSchedule.available_seats,
        )
        .values(current_bookings=TourSchedule.current_bookings + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        available = await remaining_seats(db, schedule_id)
        logger.warning(
            "Seat claim rejected on schedule %s: requested=%d available=%d", schedule_id, quantity, available
        )
        raise CapacityExceeded(available, quantity, unit="seats")


async def release_seats(db: AsyncSession, schedule_id: uuid.UUID, quantity: int) -> None:
    """Give ``quantity`` seats back to the schedule, never dropping below zero.

    Releasing more seats than the counter holds means the counter has drifted;
    it is clamped at zero and logged so it can be reconciled.
    """
    if quantity <= 0:
        return
    result = await db.execute(
        update(TourSchedule)
        .where(TourSchedule.id == schedule_id, TourSchedule.current_bookings >= quantity)
        .values(current_bookings=TourSchedule.current_bookings - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(
            "Seat release on schedule %s exceeds the stored counter: releasing=%d, clamping at 0",
            schedule_id,
            quantity,
        )
        await db.execute(
            update(TourSchedule)
            .where(TourSchedule.id == schedule_id)
            .values(current_bookings=0)
            .execution_options(synchronize_session=False)
        )


@dataclass(frozen=True)
class CounterReconciliation:
    schedule_id: uuid.UUID
    previous: int
    current: int

    @property
    def drift(self) -> int:
        return self.previous - self.current


async def reconcile_schedule_counter(db: AsyncSession, schedule_id: uuid.UUID) -> CounterReconciliation:
    """Recompute ``current_bookings`` from the bookings that hold seats.

    Every booking except a cancelled one keeps its seats (completed tours
    stay counted), matching how the counter is maintained.
    """
    schedule_result = await db.execute(
        select(TourSchedule)
        .where(TourSchedule.id == schedule_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    schedule = schedule_result.scalar_one_or_none()
    if schedule is None:
        raise NotFound("Schedule not found", details={"schedule_id": str(schedule_id)})
    previous = schedule.current_bookings

    result = await db.execute(
        select(func.coalesce(func.sum(TourBooking.number_of_participants), 0)).where(
            TourBooking.schedule_id == schedule_id,
            TourBooking.status != BookingStatus.CANCELLED.value,
        )
    )
    current = int(result.scalar_one())

    if current > schedule.available_seats:
        logger.warning(
            "Schedule %s holds more seats than it offers: counted=%d available_seats=%d",
            schedule_id,
            current,
            schedule.available_seats,
        )
        raise Conflict(
            f"Bookings hold {current} seats but the schedule only offers {schedule.available_seats}",
            details={
                "schedule_id": str(schedule_id),
                "counted": current,
                "available_seats": schedule.available_seats,
                "retryable": False,
            },
        )

    if current != previous:
        logger.warning("Schedule %s counter drifted: stored=%d counted=%d", schedule_id, previous, current)
        await db.execute(
            update(TourSchedule)
            .where(TourSchedule.id == schedule_id)
            .values(current_bookings=current)
            .execution_options(synchronize_session=False)
        )
    return CounterReconciliation(schedule_id=schedule_id, previous=previous, current=current)


# ---------------------------------------------------------------------------
# Vehicles (live overlap counting)
# ---------------------------------------------------------------------------


async def committed_vehicle_units(
    db: AsyncSession,
    vehicle_id: uuid.UUID,
    start: datetime,
    end: datetime,
    exclude_booking_id: uuid.UUID | None = None,
) -> int:
    """Units held by in-flight bookings whose interval overlaps ``[start, end]``."""
    query = select(func.coalesce(func.sum(VehicleBooking.number_of_vehicles), 0)).where(
        VehicleBooking.vehicle_id == vehicle_id,
        VehicleBooking.status.in_(_IN_FLIGHT),
        VehicleBooking.start_date <= end,
        VehicleBooking.end_date >= start,
    )
    if exclude_booking_id is not None:
        query = query.where(VehicleBooking.id != exclude_booking_id)
    result = await db.execute(query)
    return int(result.scalar_one())


async def check_vehicle_capacity(
    db: AsyncSession,
    vehicle: Vehicle,
    start: datetime,
    end: datetime,
    requested: int,
    exclude_booking_id: uuid.UUID | None = None,
) -> Availability:
    committed = await committed_vehicle_units(db, vehicle.id, start, end, exclude_booking_id)
    return Availability(available=max(vehicle.total_quantity - committed, 0), requested=requested)


async def ensure_vehicle_capacity(
    db: AsyncSession,
    vehicle: Vehicle,
    start: datetime,
    end: datetime,
    requested: int,
    exclude_booking_id: uuid.UUID | None = None,
) -> Availability:
    """Raise ``CapacityExceeded`` unless ``requested`` units are free for the interval.

    The caller must hold the vehicle row lock for the result to stay valid.
    """
    availability = await check_vehicle_capacity(db, vehicle, start, end, requested, exclude_booking_id)
    if not availability.sufficient:
        logger.warning(
            "Vehicle %s over capacity for %s..%s: requested=%d available=%d",
            vehicle.id,
            start,
            end,
            requested,
            availability.available,
        )
        raise CapacityExceeded(availability.available, requested, unit="vehicles")
    return availability


async def adjust_reserved_units(db: AsyncSession, vehicle_id: uuid.UUID, delta: int) -> None:
    """Move the vehicle's reserved-units hint by ``delta``, clamped at zero."""
    if delta == 0:
        return
    await db.execute(
        update(Vehicle)
        .where(Vehicle.id == vehicle_id)
        .values(
            reserved_quantity=case(
                (Vehicle.reserved_quantity + delta >= 0, Vehicle.reserved_quantity + delta),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )
