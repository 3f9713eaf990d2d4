"""Catalog reader: read-only lookups of resource facts and pricing rules."""

import logging
import uuid
from datetime import date, datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.booking.enums import ResourceKind
from travelbook.booking.errors import NotFound, ResourceUnavailable
from travelbook.models.catalog import Tour, TourGuidePricing, TourSchedule, Vehicle
from travelbook.models.pricing_rule import Coupon, DriverRate, LongTermDiscount, SeasonalRule

logger = logging.getLogger(__name__)


class CatalogReader:
    """Looks up tours, schedules, vehicles and the rules that price them.

    ``for_update=True`` takes a row lock (``SELECT ... FOR UPDATE``) so that
    capacity checks made against the row stay valid until the surrounding
    transaction commits.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # -- resources ---------------------------------------------------------

    async def get_tour(self, tour_id: uuid.UUID) -> Tour | None:
        result = await self.db.execute(select(Tour).where(Tour.id == tour_id))
        return result.scalar_one_or_none()

    async def require_active_tour(self, tour_id: uuid.UUID) -> Tour:
        tour = await self.get_tour(tour_id)
        if tour is None:
            raise NotFound("Tour not found", details={"tour_id": str(tour_id)})
        if not tour.is_active:
            raise ResourceUnavailable("Tour is not currently bookable", details={"tour_id": str(tour_id)})
        return tour

    async def get_schedule(self, schedule_id: uuid.UUID, *, for_update: bool = False) -> TourSchedule | None:
        query = select(TourSchedule).where(TourSchedule.id == schedule_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require_schedule(self, schedule_id: uuid.UUID, *, for_update: bool = False) -> TourSchedule:
        schedule = await self.get_schedule(schedule_id, for_update=for_update)
        if schedule is None:
            raise NotFound("Schedule not found", details={"schedule_id": str(schedule_id)})
        return schedule

    async def get_vehicle(self, vehicle_id: uuid.UUID, *, for_update: bool = False) -> Vehicle | None:
        query = select(Vehicle).where(Vehicle.id == vehicle_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def require_active_vehicle(self, vehicle_id: uuid.UUID, *, for_update: bool = False) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id, for_update=for_update)
        if vehicle is None:
            raise NotFound("Vehicle not found", details={"vehicle_id": str(vehicle_id)})
        if not vehicle.is_active:
            raise ResourceUnavailable(
                "Vehicle is not available",
                details={"vehicle_id": str(vehicle_id), "status": vehicle.status},
            )
        return vehicle

    # -- pricing rules -----------------------------------------------------

    async def guide_pricing_for_tour(self, tour_id: uuid.UUID) -> TourGuidePricing | None:
        """Tour-specific guide pricing, falling back to the active platform default."""
        result = await self.db.execute(
            select(TourGuidePricing)
            .where(TourGuidePricing.tour_id == tour_id, TourGuidePricing.is_active.is_(True))
            .limit(1)
        )
        pricing = result.scalar_one_or_none()
        if pricing is not None:
            return pricing

        result = await self.db.execute(
            select(TourGuidePricing)
            .where(TourGuidePricing.is_default.is_(True), TourGuidePricing.is_active.is_(True))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def driver_rate(self, trip_type: str | None) -> DriverRate | None:
        """Driver rate for the trip type, else the active rate with no trip type."""
        if trip_type is not None:
            result = await self.db.execute(
                select(DriverRate)
                .where(DriverRate.trip_type == trip_type, DriverRate.is_active.is_(True))
                .limit(1)
            )
            rate = result.scalar_one_or_none()
            if rate is not None:
                return rate

        result = await self.db.execute(
            select(DriverRate).where(DriverRate.trip_type.is_(None), DriverRate.is_active.is_(True)).limit(1)
        )
        return result.scalar_one_or_none()

    async def seasonal_rules(self, kind: ResourceKind, start: date, end: date) -> list[SeasonalRule]:
        """Active seasonal rules overlapping ``[start, end]`` for the resource kind.

        Category and region matching happens in the pricing calculator.
        """
        result = await self.db.execute(
            select(SeasonalRule).where(
                SeasonalRule.is_active.is_(True),
                SeasonalRule.valid_from <= end,
                SeasonalRule.valid_until >= start,
                or_(SeasonalRule.resource_kind.is_(None), SeasonalRule.resource_kind == kind.value),
            )
        )
        return list(result.scalars().all())

    async def coupon_by_code(self, code: str) -> Coupon | None:
        result = await self.db.execute(select(Coupon).where(Coupon.code == code))
        return result.scalar_one_or_none()

    async def long_term_rules(self, kind: ResourceKind) -> list[LongTermDiscount]:
        result = await self.db.execute(
            select(LongTermDiscount).where(
                LongTermDiscount.is_active.is_(True),
                or_(LongTermDiscount.resource_kind.is_(None), LongTermDiscount.resource_kind == kind.value),
            )
        )
        return list(result.scalars().all())


def start_of_day(day: date) -> datetime:
    """Naive UTC midnight of ``day``; schedule dates are compared against naive UTC clocks."""
    return datetime(day.year, day.month, day.day)
