"""SQLAlchemy models for the booking engine.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from travelbook.models.booking import TourBooking, VehicleBooking
from travelbook.models.catalog import Tour, TourGuidePricing, TourSchedule, Vehicle
from travelbook.models.pricing_rule import Coupon, DriverRate, LongTermDiscount, SeasonalRule

__all__ = [
    "Coupon",
    "DriverRate",
    "LongTermDiscount",
    "SeasonalRule",
    "Tour",
    "TourBooking",
    "TourGuidePricing",
    "TourSchedule",
    "Vehicle",
    "VehicleBooking",
]
