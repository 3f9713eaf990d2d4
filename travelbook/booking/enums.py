"""Enumerations shared by booking models, schemas and services.

Values are stored as plain strings in the database so they stay readable in
SQL and in API payloads.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Lifecycle state of a tour or vehicle booking."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ResourceKind(str, enum.Enum):
    """The two rentable resource types."""

    TOUR = "tour"
    VEHICLE = "vehicle"


class AddOnPricingType(str, enum.Enum):
    """How a guide (tours) or driver (vehicles) add-on is charged."""

    PER_DAY = "per_day"
    PER_PERSON = "per_person"
    PER_GROUP = "per_group"


class DiscountSource(str, enum.Enum):
    COUPON = "coupon"
    LONG_TERM = "long_term"
    PROMOTION = "promotion"


class DiscountValueType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "available"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"
