"""Tests for the requester-facing tour booking endpoints."""

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient

from travelbook.models import Coupon, Tour, TourGuidePricing, TourSchedule

pytestmark = pytest.mark.asyncio

URL = "/api/v1/tour-bookings"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _payload(tour: Tour, schedule: TourSchedule, participants: int = 2, **extra) -> dict:
    return {
        "tour_id": str(tour.id),
        "schedule_id": str(schedule.id),
        "number_of_participants": participants,
        **extra,
    }


async def _create(client: AsyncClient, headers: dict, payload: dict) -> dict:
    response = await client.post(URL, json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ---------------------------------------------------------------------------
# POST /api/v1/tour-bookings
# ---------------------------------------------------------------------------


class TestCreateTourBooking:
    async def test_create_success(
        self,
        client: AsyncClient,
        auth_headers: dict,
        user_id: uuid.UUID,
        tour: Tour,
        schedule: TourSchedule,
        guide_pricing: TourGuidePricing,
    ) -> None:
        data = await _create(
            client,
            auth_headers,
            _payload(tour, schedule, 3, needs_guide=True, guide_pricing_type="per_person"),
        )

        assert data["user_id"] == str(user_id)
        assert data["status"] == "pending"
        assert data["booking_code"].startswith("TBK-")
        assert data["guide_pricing_type"] == "per_person"
        assert Decimal(data["base_amount"]) == Decimal("300")
        assert Decimal(data["guide_total_price"]) == Decimal("60")
        assert Decimal(data["total_price"]) == Decimal("360")
        assert Decimal(data["price_per_participant"]) == Decimal("120")

    async def test_create_with_coupon(
        self,
        client: AsyncClient,
        auth_headers: dict,
        tour: Tour,
        later_schedule: TourSchedule,
        coupon: Coupon,
    ) -> None:
        data = await _create(client, auth_headers, _payload(tour, later_schedule, 5, coupon_code="save10"))

        assert data["coupon_code"] == "SAVE10"
        assert data["applied_discounts"] == [
            {"source": "coupon", "value_type": "percentage", "value": "10.00", "amount": "60.00", "code": "SAVE10"}
        ]
        assert Decimal(data["total_price"]) == Decimal("540")

    async def test_overbooking_returns_409_with_counts(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        payload_four = _payload(tour, schedule, 4)
        payload_two = _payload(tour, schedule, 2)
        await _create(client, auth_headers, payload_four)

        response = await client.post(URL, json=payload_two, headers=auth_headers)

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "capacity_exceeded"
        assert body["message"] == "Only 1 seats available, 2 requested"
        assert body["details"] == {"available": 1, "requested": 2, "shortfall": 1}

    async def test_guide_without_pricing_type_fails_validation(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        response = await client.post(URL, json=_payload(tour, schedule, needs_guide=True), headers=auth_headers)
        assert response.status_code == 422
        assert "Guide pricing type must be selected" in response.text

    async def test_unknown_coupon_is_422(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        response = await client.post(URL, json=_payload(tour, schedule, coupon_code="BOGUS"), headers=auth_headers)
        assert response.status_code == 422
        assert response.json()["error"] == "coupon_ineligible"

    async def test_unknown_tour_is_404(self, client: AsyncClient, auth_headers: dict, schedule: TourSchedule) -> None:
        payload = {"tour_id": str(uuid.uuid4()), "schedule_id": str(schedule.id), "number_of_participants": 1}
        response = await client.post(URL, json=payload, headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    async def test_requires_auth(self, client: AsyncClient, tour: Tour, schedule: TourSchedule) -> None:
        response = await client.post(URL, json=_payload(tour, schedule))
        assert response.status_code in (401, 403)

    async def test_invalid_token_rejected(self, client: AsyncClient, tour: Tour, schedule: TourSchedule) -> None:
        headers = {"Authorization": "Bearer not.a.valid.jwt"}
        response = await client.post(URL, json=_payload(tour, schedule), headers=headers)
        assert response.status_code == 401


# ---------------------------------------------------------------------------
# GET /api/v1/tour-bookings
# ---------------------------------------------------------------------------


class TestReadTourBookings:
    async def test_list_only_own_bookings(
        self,
        client: AsyncClient,
        auth_headers: dict,
        other_auth_headers: dict,
        tour: Tour,
        later_schedule: TourSchedule,
    ) -> None:
        await _create(client, auth_headers, _payload(tour, later_schedule, 1))
        await _create(client, auth_headers, _payload(tour, later_schedule, 2))
        await _create(client, other_auth_headers, _payload(tour, later_schedule, 3))

        response = await client.get(URL, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert sorted(item["number_of_participants"] for item in data["items"]) == [1, 2]

    async def test_list_filters_by_status(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, later_schedule: TourSchedule
    ) -> None:
        first = await _create(client, auth_headers, _payload(tour, later_schedule, 1))
        await _create(client, auth_headers, _payload(tour, later_schedule, 1))
        await client.post(f"{URL}/{first['id']}/cancel", headers=auth_headers)

        response = await client.get(URL, params={"status": "cancelled"}, headers=auth_headers)

        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == first["id"]

    async def test_other_users_booking_is_404(
        self,
        client: AsyncClient,
        auth_headers: dict,
        other_auth_headers: dict,
        tour: Tour,
        schedule: TourSchedule,
    ) -> None:
        booking = await _create(client, auth_headers, _payload(tour, schedule))

        assert (await client.get(f"{URL}/{booking['id']}", headers=auth_headers)).status_code == 200
        response = await client.get(f"{URL}/{booking['id']}", headers=other_auth_headers)
        assert response.status_code == 404
        cancel = await client.post(f"{URL}/{booking['id']}/cancel", headers=other_auth_headers)
        assert cancel.status_code == 404


# ---------------------------------------------------------------------------
# PATCH, reschedule and cancel
# ---------------------------------------------------------------------------


class TestChangeTourBooking:
    async def test_patch_participants(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        booking = await _create(client, auth_headers, _payload(tour, schedule, 2))

        response = await client.patch(
            f"{URL}/{booking['id']}", json={"number_of_participants": 3}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["number_of_participants"] == 3
        assert Decimal(response.json()["total_price"]) == Decimal("300")

    async def test_patch_null_coupon_removes_it(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, later_schedule: TourSchedule, coupon: Coupon
    ) -> None:
        booking = await _create(client, auth_headers, _payload(tour, later_schedule, 2, coupon_code="SAVE10"))

        response = await client.patch(f"{URL}/{booking['id']}", json={"coupon_code": None}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["coupon_code"] is None
        assert response.json()["applied_discounts"] == []

    async def test_reschedule(
        self,
        client: AsyncClient,
        auth_headers: dict,
        tour: Tour,
        schedule: TourSchedule,
        later_schedule: TourSchedule,
    ) -> None:
        later_id = str(later_schedule.id)
        booking = await _create(client, auth_headers, _payload(tour, schedule, 2))

        response = await client.post(
            f"{URL}/{booking['id']}/reschedule", json={"schedule_id": later_id}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["booking"]["schedule_id"] == later_id
        assert Decimal(data["previous_total"]) == Decimal("200")
        assert Decimal(data["price_difference"]) == Decimal("40")

    async def test_reschedule_to_same_schedule_is_409(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        schedule_id = str(schedule.id)
        booking = await _create(client, auth_headers, _payload(tour, schedule, 2))

        response = await client.post(
            f"{URL}/{booking['id']}/reschedule", json={"schedule_id": schedule_id}, headers=auth_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    async def test_cancel_returns_refund(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        booking = await _create(client, auth_headers, _payload(tour, schedule, 2))

        response = await client.post(
            f"{URL}/{booking['id']}/cancel", json={"reason": "Change of plans"}, headers=auth_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["booking"]["status"] == "cancelled"
        assert data["booking"]["cancellation_reason"] == "Change of plans"
        assert data["booking"]["cancelled_by"] == "Test User"
        assert data["refund"]["percentage"] == 90
        assert data["refund"]["policy"] == "CANCEL_7_DAYS_BEFORE"
        assert Decimal(data["refund"]["amount"]) == Decimal("180")

    async def test_second_cancel_is_409(
        self, client: AsyncClient, auth_headers: dict, tour: Tour, schedule: TourSchedule
    ) -> None:
        booking = await _create(client, auth_headers, _payload(tour, schedule, 2))
        assert (await client.post(f"{URL}/{booking['id']}/cancel", headers=auth_headers)).status_code == 200

        response = await client.post(f"{URL}/{booking['id']}/cancel", headers=auth_headers)

        assert response.status_code == 409
        assert response.json() == {
            "error": "invalid_state",
            "message": "Booking already cancelled",
            "details": {"status": "cancelled"},
        }
