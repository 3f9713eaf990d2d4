"""Admin API router: booking oversight, status changes and counter maintenance.

Every route requires an access token with the ``admin`` role.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.api.deps import (
    Principal,
    get_db,
    get_tour_booking_service,
    get_vehicle_booking_service,
    require_admin,
)
from travelbook.booking.enums import BookingStatus
from travelbook.models.booking import TourBooking, VehicleBooking
from travelbook.schemas.availability import ReconciliationResponse
from travelbook.schemas.common import BookingStatsResponse, StatusUpdate
from travelbook.schemas.tour_booking import TourBookingListResponse, TourBookingResponse
from travelbook.schemas.vehicle_booking import VehicleBookingListResponse, VehicleBookingResponse
from travelbook.services.booking_common import booking_stats, list_bookings
from travelbook.services.tour_booking_service import TourBookingService
from travelbook.services.vehicle_booking_service import VehicleBookingService

router = APIRouter(prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ---------------------------------------------------------------------------
# Tour bookings
# ---------------------------------------------------------------------------


@router.get("/tour-bookings", response_model=TourBookingListResponse, summary="List all tour bookings")
async def admin_list_tour_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status", description="Filter by booking status"),
    user_id: uuid.UUID | None = Query(None, description="Filter by requester"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    items, total = await list_bookings(db, TourBooking, user_id=user_id, status=status_filter, skip=skip, limit=limit)
    return {"items": items, "total": total}


@router.get("/tour-bookings/stats", response_model=BookingStatsResponse, summary="Tour booking statistics")
async def admin_tour_booking_stats(db: AsyncSession = Depends(get_db)) -> dict:
    return await booking_stats(db, TourBooking)


@router.get("/tour-bookings/{booking_id}", response_model=TourBookingResponse, summary="Get any tour booking")
async def admin_get_tour_booking(
    booking_id: uuid.UUID,
    service: TourBookingService = Depends(get_tour_booking_service),
) -> TourBooking:
    return await service.get(booking_id)


@router.patch(
    "/tour-bookings/{booking_id}/status",
    response_model=TourBookingResponse,
    summary="Move a tour booking forward or cancel it",
)
async def admin_set_tour_booking_status(
    booking_id: uuid.UUID,
    body: StatusUpdate,
    admin: Principal = Depends(require_admin),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> TourBooking:
    return await service.set_status(booking_id, body.status, actor=admin.display_name, reason=body.reason)


@router.post(
    "/tour-schedules/{schedule_id}/reconcile",
    response_model=ReconciliationResponse,
    summary="Recompute a schedule's booked-seat counter from its bookings",
)
async def admin_reconcile_schedule(
    schedule_id: uuid.UUID,
    service: TourBookingService = Depends(get_tour_booking_service),
) -> dict:
    reconciliation = await service.reconcile_counter(schedule_id)
    return {
        "schedule_id": reconciliation.schedule_id,
        "previous": reconciliation.previous,
        "current": reconciliation.current,
        "drift": reconciliation.drift,
    }


# ---------------------------------------------------------------------------
# Vehicle bookings
# ---------------------------------------------------------------------------


@router.get("/vehicle-bookings", response_model=VehicleBookingListResponse, summary="List all vehicle bookings")
async def admin_list_vehicle_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status", description="Filter by booking status"),
    user_id: uuid.UUID | None = Query(None, description="Filter by requester"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
) -> dict:
    items, total = await list_bookings(
        db, VehicleBooking, user_id=user_id, status=status_filter, skip=skip, limit=limit
    )
    return {"items": items, "total": total}


@router.get("/vehicle-bookings/stats", response_model=BookingStatsResponse, summary="Vehicle booking statistics")
async def admin_vehicle_booking_stats(db: AsyncSession = Depends(get_db)) -> dict:
    return await booking_stats(db, VehicleBooking)


@router.get(
    "/vehicle-bookings/{booking_id}", response_model=VehicleBookingResponse, summary="Get any vehicle booking"
)
async def admin_get_vehicle_booking(
    booking_id: uuid.UUID,
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> VehicleBooking:
    return await service.get(booking_id)


@router.patch(
    "/vehicle-bookings/{booking_id}/status",
    response_model=VehicleBookingResponse,
    summary="Move a vehicle booking forward or cancel it",
)
async def admin_set_vehicle_booking_status(
    booking_id: uuid.UUID,
    body: StatusUpdate,
    admin: Principal = Depends(require_admin),
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> VehicleBooking:
    return await service.set_status(booking_id, body.status, actor=admin.display_name, reason=body.reason)
