"""Catalog models: tours, their scheduled departures, guide pricing, and vehicles.

The catalog is maintained by the content-management side of the platform.
The booking engine only reads prices and capacity from these rows, and
adjusts the two capacity columns (``TourSchedule.current_bookings`` and
``Vehicle.reserved_quantity``) inside booking transactions.
"""

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from travelbook.booking.enums import VehicleStatus
from travelbook.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Tour(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A guided tour offered at a destination."""

    __tablename__ = "tours"

    destination_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    tour_type: Mapped[str | None] = mapped_column(String(50), default=None)  # trekking, cultural, wildlife, ...
    region: Mapped[str | None] = mapped_column(String(100), default=None)
    number_of_days: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_participants: Mapped[int | None] = mapped_column(default=None)
    max_participants: Mapped[int | None] = mapped_column(default=None)

    # Promotion shown on the listing; rate takes priority over amount
    discount_active: Mapped[bool] = mapped_column(default=False)
    discount_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), default=None)
    discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)

    is_active: Mapped[bool] = mapped_column(default=True)

    schedules: Mapped[list["TourSchedule"]] = relationship(
        back_populates="tour", lazy="selectin", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, title={self.title!r}, active={self.is_active})>"


class TourSchedule(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A fixed departure of a tour with its own price and seat capacity."""

    __tablename__ = "tour_schedules"

    tour_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)  # per participant
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    current_bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(default=True)

    tour: Mapped["Tour"] = relationship(back_populates="schedules", lazy="raise")

    __table_args__ = (
        CheckConstraint("current_bookings >= 0", name="ck_tour_schedules_current_bookings_non_negative"),
        CheckConstraint("current_bookings <= available_seats", name="ck_tour_schedules_not_overbooked"),
    )

    def __repr__(self) -> str:
        return (
            f"<TourSchedule(id={self.id}, tour_id={self.tour_id}, start={self.start_date}, "
            f"seats={self.current_bookings}/{self.available_seats})>"
        )


class TourGuidePricing(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Guide rates for a tour, or the platform default when ``tour_id`` is null."""

    __tablename__ = "tour_guide_pricing"

    tour_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("tours.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_default: Mapped[bool] = mapped_column(default=False)
    price_per_day: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    price_per_person: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    price_per_group: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    minimum_charge: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    maximum_group_size: Mapped[int | None] = mapped_column(default=None)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(default=True)

    def __repr__(self) -> str:
        return f"<TourGuidePricing(id={self.id}, tour_id={self.tour_id}, default={self.is_default})>"


class Vehicle(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A rentable vehicle model with a fleet of identical units."""

    __tablename__ = "vehicles"

    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    vehicle_type: Mapped[str] = mapped_column(String(50), nullable=False)  # car, jeep, van, bus, bike
    region: Mapped[str | None] = mapped_column(String(100), default=None)
    city: Mapped[str | None] = mapped_column(String(100), default=None)
    price_per_day: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Units held by in-flight bookings; a display hint, availability is always counted live
    reserved_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_units_per_booking: Mapped[int | None] = mapped_column(default=None)
    max_units_per_booking: Mapped[int | None] = mapped_column(default=None)
    status: Mapped[str] = mapped_column(String(50), default=VehicleStatus.AVAILABLE.value)

    @property
    def is_active(self) -> bool:
        return self.status == VehicleStatus.AVAILABLE.value

    @property
    def pricing_region(self) -> str | None:
        return self.region or self.city

    def __repr__(self) -> str:
        return f"<Vehicle(id={self.id}, {self.brand} {self.model}, type={self.vehicle_type!r})>"
