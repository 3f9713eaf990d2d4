"""Pricing rule models: seasonal multipliers, driver rates, coupons, long-term discounts."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Date, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from travelbook.database import Base, UUIDPrimaryKeyMixin


class SeasonalRule(UUIDPrimaryKeyMixin, Base):
    """Price multiplier for a date range, optionally limited to categories and regions.

    ``resource_kind`` is ``tour``, ``vehicle`` or null for both. Empty
    ``categories``/``regions`` lists mean "any".
    """

    __tablename__ = "seasonal_rules"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    resource_kind: Mapped[str | None] = mapped_column(String(20), default=None)
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date] = mapped_column(Date, nullable=False)
    categories: Mapped[list] = mapped_column(JSON, default=list)
    regions: Mapped[list] = mapped_column(JSON, default=list)
    price_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<SeasonalRule(name={self.name!r}, x{self.price_multiplier}, {self.valid_from}..{self.valid_until})>"


class DriverRate(UUIDPrimaryKeyMixin, Base):
    """Driver rates for a trip type (terrain); a null ``trip_type`` row is the fallback."""

    __tablename__ = "driver_rates"

    trip_type: Mapped[str | None] = mapped_column(String(50), default=None, index=True)
    rate_per_day: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    rate_per_person: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    rate_per_group: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    terrain_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(6, 3), default=None)
    minimum_charge: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<DriverRate(trip_type={self.trip_type!r}, per_day={self.rate_per_day})>"


class Coupon(UUIDPrimaryKeyMixin, Base):
    """A customer-entered discount code."""

    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    resource_kind: Mapped[str | None] = mapped_column(String(20), default=None)
    value_type: Mapped[str] = mapped_column(String(20), nullable=False)  # percentage, fixed
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    min_booking_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=None)
    min_days: Mapped[int | None] = mapped_column(default=None)
    usage_limit: Mapped[int | None] = mapped_column(default=None)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    per_user_limit: Mapped[int | None] = mapped_column(default=None)
    categories: Mapped[list] = mapped_column(JSON, default=list)
    valid_from: Mapped[datetime | None] = mapped_column(default=None)
    valid_until: Mapped[datetime | None] = mapped_column(default=None)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<Coupon(code={self.code!r}, {self.value_type}={self.value}, used={self.usage_count})>"


class LongTermDiscount(UUIDPrimaryKeyMixin, Base):
    """Automatic discount for bookings of at least ``min_days`` days."""

    __tablename__ = "long_term_discounts"

    resource_kind: Mapped[str | None] = mapped_column(String(20), default=None)
    min_days: Mapped[int] = mapped_column(Integer, nullable=False)
    value_type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return f"<LongTermDiscount(min_days={self.min_days}, {self.value_type}={self.value})>"
