"""Tour bookings API router (requester-facing).

Ownership rule: a requester only sees and changes **their own** bookings;
anyone else's booking id answers 404.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.api.deps import Principal, get_current_principal, get_db, get_tour_booking_service
from travelbook.booking.enums import BookingStatus
from travelbook.models.booking import TourBooking
from travelbook.schemas.common import CancelRequest, RefundResponse
from travelbook.schemas.tour_booking import (
    RescheduleRequest,
    RescheduleResponse,
    TourBookingCreate,
    TourBookingListResponse,
    TourBookingResponse,
    TourBookingUpdate,
    TourCancellationResponse,
)
from travelbook.services.booking_common import list_bookings
from travelbook.services.tour_booking_service import TourBookingService

router = APIRouter(prefix="/api/v1/tour-bookings", tags=["tour-bookings"])


@router.post(
    "",
    response_model=TourBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book seats on a tour departure",
)
async def create_tour_booking(
    body: TourBookingCreate,
    principal: Principal = Depends(get_current_principal),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> TourBooking:
    """Reserve seats, price the booking and claim the seats in one transaction."""
    return await service.create(user_id=principal.user_id, **body.model_dump())


@router.get(
    "",
    response_model=TourBookingListResponse,
    summary="List the requester's tour bookings",
)
async def list_tour_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> dict:
    items, total = await list_bookings(
        db, TourBooking, user_id=principal.user_id, status=status_filter, skip=skip, limit=limit
    )
    return {"items": items, "total": total}


@router.get(
    "/{booking_id}",
    response_model=TourBookingResponse,
    summary="Get one of the requester's tour bookings",
)
async def get_tour_booking(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> TourBooking:
    return await service.get(booking_id, owner_id=principal.user_id)


@router.patch(
    "/{booking_id}",
    response_model=TourBookingResponse,
    summary="Change participants, guide or coupon of a pending booking",
)
async def update_tour_booking(
    booking_id: uuid.UUID,
    body: TourBookingUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> TourBooking:
    """Only fields present in the request body are changed; the price is recomputed in full."""
    return await service.update(booking_id, body.changes(), owner_id=principal.user_id)


@router.post(
    "/{booking_id}/reschedule",
    response_model=RescheduleResponse,
    summary="Move a booking to another departure of the same tour",
)
async def reschedule_tour_booking(
    booking_id: uuid.UUID,
    body: RescheduleRequest,
    principal: Principal = Depends(get_current_principal),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> RescheduleResponse:
    result = await service.reschedule(booking_id, body.schedule_id, owner_id=principal.user_id)
    return RescheduleResponse(
        booking=TourBookingResponse.model_validate(result.booking),
        previous_total=result.previous_total,
        price_difference=result.price_difference,
    )


@router.post(
    "/{booking_id}/cancel",
    response_model=TourCancellationResponse,
    summary="Cancel a booking and compute the refund",
)
async def cancel_tour_booking(
    booking_id: uuid.UUID,
    body: CancelRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> TourCancellationResponse:
    """A second cancel of the same booking is rejected with 409."""
    result = await service.cancel(
        booking_id,
        owner_id=principal.user_id,
        reason=body.reason if body else None,
        cancelled_by=principal.display_name,
    )
    return TourCancellationResponse(
        booking=TourBookingResponse.model_validate(result.booking),
        refund=RefundResponse.model_validate(result.refund, from_attributes=True),
    )
