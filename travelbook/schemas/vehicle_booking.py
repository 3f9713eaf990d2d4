"""Pydantic v2 request/response schemas for vehicle booking endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from travelbook.booking.enums import AddOnPricingType
from travelbook.schemas.common import AppliedDiscountResponse, RefundResponse, to_naive_utc

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class VehicleBookingCreate(BaseModel):
    """Schema for renting one or more units of a vehicle."""

    vehicle_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    number_of_vehicles: int = Field(1, ge=1)
    needs_driver: bool = False
    number_of_drivers: int = Field(0, ge=0)
    driver_pricing_type: AddOnPricingType | None = None
    trip_type: str | None = Field(None, max_length=50)
    destination: str | None = Field(None, max_length=255)
    pickup_location: str | None = Field(None, max_length=255)
    dropoff_location: str | None = Field(None, max_length=255)
    special_requests: str | None = None
    coupon_code: str | None = Field(None, max_length=50)
    advance_amount: Decimal = Field(Decimal("0"), ge=0)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalise_datetime(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def check_dates(self) -> "VehicleBookingCreate":
        """Validate that end_date is strictly after start_date."""
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class VehicleBookingUpdate(BaseModel):
    """Partial update of a pending vehicle booking. All fields optional."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    number_of_vehicles: int | None = Field(None, ge=1)
    needs_driver: bool | None = None
    number_of_drivers: int | None = Field(None, ge=0)
    driver_pricing_type: AddOnPricingType | None = None
    trip_type: str | None = Field(None, max_length=50)
    destination: str | None = Field(None, max_length=255)
    pickup_location: str | None = Field(None, max_length=255)
    dropoff_location: str | None = Field(None, max_length=255)
    special_requests: str | None = None
    coupon_code: str | None = Field(None, max_length=50)
    advance_amount: Decimal | None = Field(None, ge=0)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalise_datetime(cls, value: datetime | None) -> datetime | None:
        return to_naive_utc(value)

    @model_validator(mode="after")
    def check_dates(self) -> "VehicleBookingUpdate":
        """If both dates are provided, validate end_date > start_date."""
        if self.start_date is not None and self.end_date is not None and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if data.get("driver_pricing_type") is not None:
            data["driver_pricing_type"] = AddOnPricingType(data["driver_pricing_type"]).value
        for key in ("start_date", "end_date", "number_of_vehicles", "needs_driver", "advance_amount"):
            if key in data and data[key] is None:
                del data[key]
        return data


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VehicleBookingResponse(BaseModel):
    """Vehicle booking with its full price snapshot and payment split."""

    id: uuid.UUID
    booking_code: str
    user_id: uuid.UUID
    vehicle_id: uuid.UUID
    start_date: datetime
    end_date: datetime
    duration_days: int
    number_of_vehicles: int
    status: str

    trip_type: str | None = None
    destination: str | None = None
    pickup_location: str | None = None
    dropoff_location: str | None = None
    special_requests: str | None = None

    seasonal_multiplier: Decimal
    price_per_day_at_booking: Decimal
    base_amount: Decimal
    needs_driver: bool
    number_of_drivers: int
    driver_pricing_type: str | None = None
    driver_rate_at_booking: Decimal | None = None
    driver_minimum_charge: Decimal | None = None
    terrain_charge: Decimal
    driver_total_amount: Decimal | None = None
    gross_amount: Decimal
    applied_discounts: list[AppliedDiscountResponse] = []
    discount_amount: Decimal
    coupon_code: str | None = None
    total_price: Decimal
    advance_amount: Decimal
    remaining_amount: Decimal
    refund_amount: Decimal | None = None

    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VehicleBookingListResponse(BaseModel):
    """Paginated list of vehicle bookings."""

    items: list[VehicleBookingResponse]
    total: int


class VehicleCancellationResponse(BaseModel):
    booking: VehicleBookingResponse
    refund: RefundResponse
