"""Pydantic v2 request/response schemas for tour booking endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from travelbook.booking.enums import AddOnPricingType
from travelbook.schemas.common import AppliedDiscountResponse, RefundResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TourBookingCreate(BaseModel):
    """Schema for booking seats on a tour departure."""

    tour_id: uuid.UUID
    schedule_id: uuid.UUID
    number_of_participants: int = Field(..., ge=1)
    needs_guide: bool = False
    guide_pricing_type: AddOnPricingType | None = None
    number_of_guides: int | None = Field(None, ge=1)
    coupon_code: str | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def check_guide(self) -> "TourBookingCreate":
        """A guide needs a pricing type; per-day pricing also needs a guide count."""
        if not self.needs_guide:
            return self
        if self.guide_pricing_type is None:
            raise ValueError("Guide pricing type must be selected if guide is needed")
        if self.guide_pricing_type == AddOnPricingType.PER_DAY and self.number_of_guides is None:
            raise ValueError("Number of guides needed must be at least 1 when pricing is per_day")
        return self


class TourBookingUpdate(BaseModel):
    """Partial update of a pending tour booking. All fields optional.

    Sending ``coupon_code: null`` removes the coupon.
    """

    number_of_participants: int | None = Field(None, ge=1)
    needs_guide: bool | None = None
    guide_pricing_type: AddOnPricingType | None = None
    number_of_guides: int | None = Field(None, ge=1)
    coupon_code: str | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def check_guide(self) -> "TourBookingUpdate":
        if self.needs_guide is True and self.guide_pricing_type == AddOnPricingType.PER_DAY:
            if self.number_of_guides is None:
                raise ValueError("Number of guides needed must be at least 1 when pricing is per_day")
        return self

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if data.get("guide_pricing_type") is not None:
            data["guide_pricing_type"] = AddOnPricingType(data["guide_pricing_type"]).value
        for key in ("number_of_participants", "needs_guide"):
            if key in data and data[key] is None:
                del data[key]
        return data


class RescheduleRequest(BaseModel):
    schedule_id: uuid.UUID


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TourBookingResponse(BaseModel):
    """Tour booking with its full price snapshot."""

    id: uuid.UUID
    booking_code: str
    user_id: uuid.UUID
    tour_id: uuid.UUID
    schedule_id: uuid.UUID
    destination_id: uuid.UUID
    number_of_participants: int
    status: str

    seasonal_multiplier: Decimal
    price_per_participant_at_booking: Decimal
    base_amount: Decimal
    needs_guide: bool
    number_of_guides: int | None = None
    guide_pricing_type: str | None = None
    guide_rate_at_booking: Decimal | None = None
    guide_minimum_charge: Decimal | None = None
    guide_total_price: Decimal | None = None
    gross_amount: Decimal
    applied_discounts: list[AppliedDiscountResponse] = []
    discount_amount: Decimal
    coupon_code: str | None = None
    total_price: Decimal
    price_per_participant: Decimal
    refund_amount: Decimal | None = None

    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TourBookingListResponse(BaseModel):
    """Paginated list of tour bookings."""

    items: list[TourBookingResponse]
    total: int


class RescheduleResponse(BaseModel):
    """Rescheduled booking plus the signed amount still to settle."""

    booking: TourBookingResponse
    previous_total: Decimal
    price_difference: Decimal


class TourCancellationResponse(BaseModel):
    booking: TourBookingResponse
    refund: RefundResponse
