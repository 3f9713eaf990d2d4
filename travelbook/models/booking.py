"""Booking models: tour seat reservations and vehicle rentals.

Both share ``BookingRecordMixin``: identity, requester, lifecycle status and
timestamps, and the resource-independent half of the price snapshot (gross,
discounts, total, refund). Each model adds its own interval, quantity and
add-on columns.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from travelbook.booking.enums import BookingStatus
from travelbook.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class BookingRecordMixin(UUIDPrimaryKeyMixin, TimestampMixin):
    """Columns common to every booking."""

    booking_code: Mapped[str] = mapped_column(String(40), nullable=False, unique=True, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=BookingStatus.PENDING.value,
        index=True,
    )  # pending, confirmed, active, completed, cancelled

    # Price snapshot, replaced wholesale on every recalculation
    seasonal_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), default=Decimal("1"))
    base_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    applied_discounts: Mapped[list] = mapped_column(JSON, default=list)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    coupon_code: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)

    cancellation_reason: Mapped[str | None] = mapped_column(Text, default=None)
    cancelled_by: Mapped[str | None] = mapped_column(String(255), default=None)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)

    @property
    def booking_status(self) -> BookingStatus:
        return BookingStatus(self.status)


class TourBooking(BookingRecordMixin, Base):
    """Seats reserved on a scheduled tour departure."""

    __tablename__ = "tour_bookings"

    tour_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tours.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    schedule_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tour_schedules.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    destination_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    number_of_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_participant_at_booking: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price_per_participant: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # final total / participants

    needs_guide: Mapped[bool] = mapped_column(default=False)
    number_of_guides: Mapped[int | None] = mapped_column(default=None)
    guide_pricing_type: Mapped[str | None] = mapped_column(String(20), default=None)
    guide_rate_at_booking: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    guide_minimum_charge: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    guide_total_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)

    tour: Mapped["Tour"] = relationship(lazy="raise")  # type: ignore[name-defined]  # noqa: F821
    schedule: Mapped["TourSchedule"] = relationship(lazy="raise")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (Index("ix_tour_bookings_schedule_status", "schedule_id", "status"),)

    def __repr__(self) -> str:
        return (
            f"<TourBooking(code={self.booking_code}, schedule_id={self.schedule_id}, "
            f"participants={self.number_of_participants}, status={self.status})>"
        )


class VehicleBooking(BookingRecordMixin, Base):
    """Units of a vehicle rented for an explicit start/end interval."""

    __tablename__ = "vehicle_bookings"

    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("vehicles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    number_of_vehicles: Mapped[int] = mapped_column(Integer, nullable=False)

    trip_type: Mapped[str | None] = mapped_column(String(50), default=None)
    destination: Mapped[str | None] = mapped_column(String(255), default=None)
    pickup_location: Mapped[str | None] = mapped_column(String(255), default=None)
    dropoff_location: Mapped[str | None] = mapped_column(String(255), default=None)
    special_requests: Mapped[str | None] = mapped_column(Text, default=None)

    price_per_day_at_booking: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # seasonally adjusted

    needs_driver: Mapped[bool] = mapped_column(default=False)
    number_of_drivers: Mapped[int] = mapped_column(Integer, default=0)
    driver_pricing_type: Mapped[str | None] = mapped_column(String(20), default=None)
    driver_rate_at_booking: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    driver_minimum_charge: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    terrain_charge: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    driver_total_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)

    advance_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    remaining_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    vehicle: Mapped["Vehicle"] = relationship(lazy="raise")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (Index("ix_vehicle_bookings_vehicle_interval", "vehicle_id", "start_date", "end_date"),)

    def __repr__(self) -> str:
        return (
            f"<VehicleBooking(code={self.booking_code}, vehicle_id={self.vehicle_id}, "
            f"units={self.number_of_vehicles}, status={self.status})>"
        )
