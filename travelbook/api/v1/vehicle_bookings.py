"""Vehicle bookings API router (requester-facing)."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.api.deps import Principal, get_current_principal, get_db, get_vehicle_booking_service
from travelbook.booking.enums import BookingStatus
from travelbook.models.booking import VehicleBooking
from travelbook.schemas.common import CancelRequest, RefundResponse
from travelbook.schemas.vehicle_booking import (
    VehicleBookingCreate,
    VehicleBookingListResponse,
    VehicleBookingResponse,
    VehicleBookingUpdate,
    VehicleCancellationResponse,
)
from travelbook.services.booking_common import list_bookings
from travelbook.services.vehicle_booking_service import VehicleBookingService

router = APIRouter(prefix="/api/v1/vehicle-bookings", tags=["vehicle-bookings"])


@router.post(
    "",
    response_model=VehicleBookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Rent vehicle units for a date range",
)
async def create_vehicle_booking(
    body: VehicleBookingCreate,
    principal: Principal = Depends(get_current_principal),
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> VehicleBooking:
    return await service.create(user_id=principal.user_id, **body.model_dump())


@router.get(
    "",
    response_model=VehicleBookingListResponse,
    summary="List the requester's vehicle bookings",
)
async def list_vehicle_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status", description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> dict:
    items, total = await list_bookings(
        db, VehicleBooking, user_id=principal.user_id, status=status_filter, skip=skip, limit=limit
    )
    return {"items": items, "total": total}


@router.get(
    "/{booking_id}",
    response_model=VehicleBookingResponse,
    summary="Get one of the requester's vehicle bookings",
)
async def get_vehicle_booking(
    booking_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> VehicleBooking:
    return await service.get(booking_id, owner_id=principal.user_id)


@router.patch(
    "/{booking_id}",
    response_model=VehicleBookingResponse,
    summary="Change dates, units, driver, coupon or trip details of a pending booking",
)
async def update_vehicle_booking(
    booking_id: uuid.UUID,
    body: VehicleBookingUpdate,
    principal: Principal = Depends(get_current_principal),
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> VehicleBooking:
    return await service.update(booking_id, body.changes(), owner_id=principal.user_id)


@router.post(
    "/{booking_id}/cancel",
    response_model=VehicleCancellationResponse,
    summary="Cancel a rental and compute the refund",
)
async def cancel_vehicle_booking(
    booking_id: uuid.UUID,
    body: CancelRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> VehicleCancellationResponse:
    result = await service.cancel(
        booking_id,
        owner_id=principal.user_id,
        reason=body.reason if body else None,
        cancelled_by=principal.display_name,
    )
    return VehicleCancellationResponse(
        booking=VehicleBookingResponse.model_validate(result.booking),
        refund=RefundResponse.model_validate(result.refund, from_attributes=True),
    )
