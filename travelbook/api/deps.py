"""Shared API dependencies: single import point for all routers.

Re-exports the database session and authentication dependencies, and builds
the booking services on the request's session::

    from travelbook.api.deps import get_db, get_current_principal, get_tour_booking_service
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from travelbook.auth.dependencies import Principal, get_current_principal, require_admin
from travelbook.database import get_db
from travelbook.services.tour_booking_service import TourBookingService
from travelbook.services.vehicle_booking_service import VehicleBookingService


async def get_tour_booking_service(db: AsyncSession = Depends(get_db)) -> TourBookingService:
    return TourBookingService(db)


async def get_vehicle_booking_service(db: AsyncSession = Depends(get_db)) -> VehicleBookingService:
    return VehicleBookingService(db)


__all__ = [
    "Principal",
    "get_db",
    "get_current_principal",
    "require_admin",
    "get_tour_booking_service",
    "get_vehicle_booking_service",
]
