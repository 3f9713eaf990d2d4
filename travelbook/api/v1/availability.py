"""Availability API router: remaining seats and vehicle units."""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from travelbook.api.deps import (
    Principal,
    get_current_principal,
    get_tour_booking_service,
    get_vehicle_booking_service,
)
from travelbook.schemas.availability import AvailabilityResponse
from travelbook.schemas.common import to_naive_utc
from travelbook.services.availability import Availability
from travelbook.services.tour_booking_service import TourBookingService
from travelbook.services.vehicle_booking_service import VehicleBookingService

router = APIRouter(prefix="/api/v1/availability", tags=["availability"])


def _as_response(availability: Availability) -> dict:
    return {
        "available": availability.available,
        "requested": availability.requested,
        "sufficient": availability.sufficient,
    }


@router.get(
    "/schedules/{schedule_id}",
    response_model=AvailabilityResponse,
    summary="Remaining seats on a tour departure",
)
async def schedule_availability(
    schedule_id: uuid.UUID,
    participants: int = Query(1, ge=1, description="Seats the caller wants"),
    _principal: Principal = Depends(get_current_principal),
    service: TourBookingService = Depends(get_tour_booking_service),
) -> dict:
    return _as_response(await service.check_availability(schedule_id, participants))


@router.get(
    "/vehicles/{vehicle_id}",
    response_model=AvailabilityResponse,
    summary="Free units of a vehicle over a date range",
)
async def vehicle_availability(
    vehicle_id: uuid.UUID,
    start: datetime = Query(..., description="Rental start"),
    end: datetime = Query(..., description="Rental end"),
    quantity: int = Query(1, ge=1, description="Units the caller wants"),
    _principal: Principal = Depends(get_current_principal),
    service: VehicleBookingService = Depends(get_vehicle_booking_service),
) -> dict:
    availability = await service.check_availability(vehicle_id, to_naive_utc(start), to_naive_utc(end), quantity)
    return _as_response(availability)
