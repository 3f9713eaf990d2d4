"""Seed the database with a sample Nepal tour and vehicle catalog.

Creates tours with upcoming departures, guide pricing, a small vehicle fleet,
seasonal rules, driver rates, coupons and long-term discounts, then books a
few tours and rentals through the booking services so that seat counters and
reserved-unit hints start out consistent.

Run inside Docker:
    docker compose exec backend python -m scripts.seed_data
"""

import asyncio
import sys
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from pathlib import Path

# Add project root to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete

from travelbook.auth.jwt import create_access_token
from travelbook.database import async_session_factory
from travelbook.models import (
    Coupon,
    DriverRate,
    LongTermDiscount,
    SeasonalRule,
    Tour,
    TourBooking,
    TourGuidePricing,
    TourSchedule,
    Vehicle,
    VehicleBooking,
)
from travelbook.services.tour_booking_service import TourBookingService
from travelbook.services.vehicle_booking_service import VehicleBookingService

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_USER_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
DEMO_ADMIN_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")

TOURS = [
    {
        "title": "Poon Hill Sunrise Trek",
        "description": "Short teahouse trek through rhododendron forest to the Poon Hill viewpoint.",
        "tour_type": "trekking",
        "region": "Gandaki",
        "number_of_days": 4,
        "base_price": Decimal("18000.00"),
        "min_participants": 1,
        "max_participants": 12,
    },
    {
        "title": "Kathmandu Valley Heritage Walk",
        "description": "Durbar squares of Kathmandu, Patan and Bhaktapur with a local historian.",
        "tour_type": "cultural",
        "region": "Bagmati",
        "number_of_days": 1,
        "base_price": Decimal("3500.00"),
        "min_participants": 2,
        "max_participants": 20,
        "discount_active": True,
        "discount_rate": Decimal("10.00"),
    },
    {
        "title": "Chitwan Jungle Safari",
        "description": "Jeep and canoe safari in Chitwan National Park with an overnight lodge stay.",
        "tour_type": "wildlife",
        "region": "Bagmati",
        "number_of_days": 2,
        "base_price": Decimal("12000.00"),
        "min_participants": 1,
        "max_participants": 8,
    },
]

# (days from today, seats) for every tour's departures
DEPARTURES = [(14, 10), (28, 12), (45, 8)]

VEHICLES = [
    {
        "brand": "Toyota",
        "model": "Land Cruiser Prado",
        "vehicle_type": "jeep",
        "region": "Bagmati",
        "city": "Kathmandu",
        "price_per_day": Decimal("12000.00"),
        "total_quantity": 3,
        "max_units_per_booking": 2,
    },
    {
        "brand": "Hyundai",
        "model": "H-1",
        "vehicle_type": "van",
        "region": "Gandaki",
        "city": "Pokhara",
        "price_per_day": Decimal("8000.00"),
        "total_quantity": 4,
        "max_units_per_booking": 3,
    },
    {
        "brand": "Suzuki",
        "model": "Swift",
        "vehicle_type": "car",
        "region": "Bagmati",
        "city": "Lalitpur",
        "price_per_day": Decimal("4500.00"),
        "total_quantity": 6,
    },
]


def _seasonal_rules(today: date) -> list[SeasonalRule]:
    return [
        SeasonalRule(
            name="Autumn trekking peak",
            resource_kind="tour",
            valid_from=today + timedelta(days=20),
            valid_until=today + timedelta(days=60),
            categories=["trekking"],
            price_multiplier=Decimal("1.25"),
            priority=10,
        ),
        SeasonalRule(
            name="Festival fleet demand",
            resource_kind="vehicle",
            valid_from=today + timedelta(days=25),
            valid_until=today + timedelta(days=40),
            regions=["Bagmati"],
            price_multiplier=Decimal("1.15"),
            priority=5,
        ),
    ]


def _driver_rates() -> list[DriverRate]:
    return [
        DriverRate(rate_per_day=Decimal("1500.00"), rate_per_group=Decimal("4000.00")),
        DriverRate(
            trip_type="mountain",
            rate_per_day=Decimal("2500.00"),
            rate_per_group=Decimal("6000.00"),
            terrain_multiplier=Decimal("1.2"),
            minimum_charge=Decimal("3000.00"),
        ),
    ]


def _coupons(today: date) -> list[Coupon]:
    return [
        Coupon(
            code="NAMASTE10",
            description="10% off any booking, capped at NPR 5,000",
            value_type="percentage",
            value=Decimal("10.00"),
            max_discount=Decimal("5000.00"),
            usage_limit=500,
            per_user_limit=2,
        ),
        Coupon(
            code="ROADTRIP",
            description="Flat NPR 3,000 off rentals of three days or more",
            resource_kind="vehicle",
            value_type="fixed",
            value=Decimal("3000.00"),
            min_days=3,
            valid_until=datetime.combine(today + timedelta(days=90), time.max),
        ),
    ]


def _long_term_discounts() -> list[LongTermDiscount]:
    return [
        LongTermDiscount(resource_kind="vehicle", min_days=7, value_type="percentage", value=Decimal("10.00")),
        LongTermDiscount(resource_kind="vehicle", min_days=14, value_type="percentage", value=Decimal("15.00")),
    ]


# ---------------------------------------------------------------------------
# Main seed function
# ---------------------------------------------------------------------------


async def seed() -> None:
    """Populate the database with the sample catalog and a few bookings.

    Idempotent: every booking-engine table is cleared before re-seeding.
    """
    async with async_session_factory() as session:
        print("⚠️  Clearing existing booking engine data...")
        for model in (
            TourBooking,
            VehicleBooking,
            TourGuidePricing,
            TourSchedule,
            Tour,
            Vehicle,
            SeasonalRule,
            DriverRate,
            Coupon,
            LongTermDiscount,
        ):
            await session.execute(delete(model))
        await session.commit()

        today = date.today()

        # ------------------------------------------------------------------
        # 1. Tours, departures and guide pricing
        # ------------------------------------------------------------------
        created_tours: list[Tour] = []
        for tour_data in TOURS:
            tour = Tour(destination_id=uuid.uuid4(), **tour_data)
            session.add(tour)
            await session.flush()
            for offset, seats in DEPARTURES:
                start = today + timedelta(days=offset)
                session.add(
                    TourSchedule(
                        tour_id=tour.id,
                        start_date=start,
                        end_date=start + timedelta(days=tour.number_of_days - 1),
                        price=tour.base_price,
                        available_seats=seats,
                    )
                )
            created_tours.append(tour)
            print(f"   🏔️  {tour.title} · {tour.region} (NPR {tour.base_price}/person)")

        session.add(
            TourGuidePricing(
                tour_id=created_tours[0].id,
                price_per_day=Decimal("3000.00"),
                price_per_person=Decimal("1500.00"),
                price_per_group=Decimal("10000.00"),
                minimum_charge=Decimal("5000.00"),
                maximum_group_size=10,
            )
        )
        session.add(
            TourGuidePricing(
                is_default=True,
                price_per_day=Decimal("2500.00"),
                price_per_group=Decimal("6000.00"),
                description="Platform default guide rates",
            )
        )

        # ------------------------------------------------------------------
        # 2. Vehicles and pricing rules
        # ------------------------------------------------------------------
        created_vehicles: list[Vehicle] = []
        for vehicle_data in VEHICLES:
            vehicle = Vehicle(**vehicle_data)
            session.add(vehicle)
            created_vehicles.append(vehicle)
            print(f"   🚙 {vehicle.brand} {vehicle.model} x{vehicle.total_quantity} (NPR {vehicle.price_per_day})")

        session.add_all(_seasonal_rules(today))
        session.add_all(_driver_rates())
        session.add_all(_coupons(today))
        session.add_all(_long_term_discounts())
        await session.commit()
        print(f"✅ Created {len(created_tours)} tours and {len(created_vehicles)} vehicles")

        # ------------------------------------------------------------------
        # 3. Sample bookings through the services
        # ------------------------------------------------------------------
        tours = TourBookingService(session)
        vehicles = VehicleBookingService(session)

        trek = created_tours[0]
        await session.refresh(trek, attribute_names=["schedules"])
        first_departure = min(trek.schedules, key=lambda s: s.start_date)
        await tours.create(
            user_id=DEMO_USER_ID,
            tour_id=trek.id,
            schedule_id=first_departure.id,
            number_of_participants=3,
            needs_guide=True,
            guide_pricing_type="per_group",
            coupon_code="NAMASTE10",
        )

        jeep = created_vehicles[0]
        start = datetime.combine(today + timedelta(days=10), time(8, 0))
        await vehicles.create(
            user_id=DEMO_USER_ID,
            vehicle_id=jeep.id,
            start_date=start,
            end_date=start + timedelta(days=8),
            needs_driver=True,
            number_of_drivers=1,
            trip_type="mountain",
            pickup_location="Tribhuvan International Airport",
            advance_amount=Decimal("20000.00"),
        )
        print("✅ Created 2 sample bookings")

    print()
    print("=" * 60)
    print("📊 Seed Summary")
    print("=" * 60)
    print(f"   Tours:     {len(TOURS)} ({len(TOURS) * len(DEPARTURES)} departures)")
    print(f"   Vehicles:  {len(VEHICLES)}")
    print("   Coupons:   NAMASTE10, ROADTRIP")
    print("=" * 60)
    user_token = create_access_token({"sub": str(DEMO_USER_ID), "name": "Demo Traveller"})
    admin_token = create_access_token({"sub": str(DEMO_ADMIN_ID), "name": "Demo Admin", "role": "admin"})
    print(f"🔑 Demo user token:  {user_token}")
    print(f"🔑 Demo admin token: {admin_token}")
    print("🎉 Done! Try GET /api/v1/tour-bookings with the user token.")


if __name__ == "__main__":
    asyncio.run(seed())
