"""Tests for the pure pricing calculator."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from travelbook.booking.enums import AddOnPricingType, DiscountSource, ResourceKind
from travelbook.booking.errors import CouponIneligible, InvalidPricingType, ValidationError
from travelbook.booking.pricing import (
    AddOnRates,
    AddOnSelection,
    coupon_discount,
    long_term_discount,
    money,
    pick_seasonal_multiplier,
    price_booking,
    promotion_discount,
    quote_addon,
)

NOW = datetime(2026, 3, 1, 12, 0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _coupon(**overrides) -> SimpleNamespace:
    fields = {
        "code": "SAVE10",
        "is_active": True,
        "valid_from": None,
        "valid_until": None,
        "resource_kind": None,
        "value_type": "percentage",
        "value": Decimal("10"),
        "max_discount": Decimal("150"),
        "min_booking_amount": None,
        "min_days": None,
        "usage_limit": None,
        "usage_count": 0,
        "per_user_limit": None,
        "categories": [],
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _apply_coupon(coupon, gross="2000", days=8, **kwargs):
    params = {
        "code": coupon.code,
        "gross_amount": Decimal(gross),
        "duration_days": days,
        "category": "jeep",
        "resource_kind": ResourceKind.VEHICLE,
        "now": NOW,
    }
    params.update(kwargs)
    return coupon_discount(coupon, **params)


def _long_term_rule(min_days: int, value: str, value_type: str = "fixed") -> SimpleNamespace:
    return SimpleNamespace(is_active=True, min_days=min_days, value_type=value_type, value=Decimal(value))


def _season(multiplier: str, priority: int = 0, **overrides) -> SimpleNamespace:
    fields = {
        "is_active": True,
        "valid_from": date(2026, 3, 1),
        "valid_until": date(2026, 5, 31),
        "categories": [],
        "regions": [],
        "priority": priority,
        "price_multiplier": Decimal(multiplier),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


# ---------------------------------------------------------------------------
# Discount stacking
# ---------------------------------------------------------------------------


class TestDiscountStacking:
    def test_coupon_and_long_term_stack_against_gross(self) -> None:
        draft = price_booking(unit_price=Decimal("250"), quantity=1, billable_days=8)
        assert draft.gross_amount == Decimal("2000.00")

        coupon = _apply_coupon(_coupon(), gross=str(draft.gross_amount), days=8)
        long_term = long_term_discount([_long_term_rule(7, "100")], duration_days=8, gross_amount=draft.gross_amount)
        snapshot = draft.with_discounts([coupon, long_term])

        assert coupon.amount == Decimal("150.00")  # min(200, 150)
        assert long_term.amount == Decimal("100.00")
        assert snapshot.discount_amount == Decimal("250.00")
        assert snapshot.total_price == Decimal("1750.00")
        assert snapshot.coupon_code == "SAVE10"
        assert [d.source for d in snapshot.discounts] == [DiscountSource.COUPON, DiscountSource.LONG_TERM]

    def test_discounts_exceeding_gross_are_trimmed(self) -> None:
        draft = price_booking(unit_price=Decimal("100"), quantity=1)
        big = _apply_coupon(_coupon(value_type="fixed", value=Decimal("80"), max_discount=None), gross="100", days=1)
        bigger = long_term_discount(
            [_long_term_rule(1, "50")], duration_days=1, gross_amount=draft.gross_amount, min_days=1
        )

        snapshot = draft.with_discounts([big, bigger])

        assert [d.amount for d in snapshot.discounts] == [Decimal("80.00"), Decimal("20.00")]
        assert snapshot.total_price == Decimal("0.00")
        assert snapshot.total_price == snapshot.gross_amount - snapshot.discount_amount

    def test_discount_json_is_string_encoded(self) -> None:
        draft = price_booking(unit_price=Decimal("2000"), quantity=1)
        snapshot = draft.with_discounts([_apply_coupon(_coupon(), days=1)])
        assert snapshot.discounts_as_json() == [
            {"source": "coupon", "value_type": "percentage", "value": "10", "amount": "150.00", "code": "SAVE10"}
        ]


# ---------------------------------------------------------------------------
# Guide / driver add-ons
# ---------------------------------------------------------------------------


class TestAddOns:
    def test_per_person_guide(self) -> None:
        quote = quote_addon(
            AddOnSelection(AddOnPricingType.PER_PERSON),
            AddOnRates(per_person=Decimal("20")),
            participants=4,
            duration_days=3,
            label="guide",
        )
        assert quote.amount == Decimal("80.00")
        assert quote.quantity is None

    def test_per_day_guide(self) -> None:
        quote = quote_addon(
            AddOnSelection("per_day", 2),
            AddOnRates(per_day=Decimal("50")),
            participants=4,
            duration_days=3,
            label="guide",
        )
        assert quote.amount == Decimal("300.00")

    def test_per_group_is_flat(self) -> None:
        rates = AddOnRates(per_group=Decimal("150"))
        small = quote_addon(AddOnSelection("per_group"), rates, participants=1, duration_days=5)
        large = quote_addon(AddOnSelection("per_group"), rates, participants=9, duration_days=5)
        assert small.amount == large.amount == Decimal("150.00")

    def test_minimum_charge_floor(self) -> None:
        quote = quote_addon(
            AddOnSelection("per_person"),
            AddOnRates(per_person=Decimal("20"), minimum_charge=Decimal("250")),
            participants=4,
            duration_days=3,
        )
        assert quote.raw_amount == Decimal("80.00")
        assert quote.amount == Decimal("250.00")
        assert quote.floor_applied

    def test_floor_compared_after_terrain_surcharge(self) -> None:
        rates = AddOnRates(per_day=Decimal("1000"), surcharge_multiplier=Decimal("1.5"), minimum_charge=Decimal("2500"))
        quote = quote_addon(AddOnSelection("per_day", 1), rates, participants=1, duration_days=2, label="driver")
        assert quote.raw_amount == Decimal("2000.00")
        assert quote.surcharge == Decimal("1000.00")
        assert quote.amount == Decimal("3000.00")
        assert not quote.floor_applied

    def test_missing_pricing_type(self) -> None:
        with pytest.raises(InvalidPricingType):
            quote_addon(AddOnSelection(None), AddOnRates(per_day=Decimal("50")), participants=2, duration_days=1)

    def test_unknown_pricing_type(self) -> None:
        with pytest.raises(InvalidPricingType) as exc_info:
            quote_addon(AddOnSelection("hourly"), AddOnRates(per_day=Decimal("50")), participants=2, duration_days=1)
        assert "per_day" in exc_info.value.details["allowed"]

    def test_rate_not_configured_for_type(self) -> None:
        with pytest.raises(InvalidPricingType):
            quote_addon(AddOnSelection("per_group"), AddOnRates(per_day=Decimal("50")), participants=2, duration_days=1)

    def test_per_day_requires_count(self) -> None:
        with pytest.raises(ValidationError, match="at least 1"):
            quote_addon(
                AddOnSelection("per_day", None),
                AddOnRates(per_day=Decimal("50")),
                participants=2,
                duration_days=3,
                label="guide",
            )


# ---------------------------------------------------------------------------
# Base amount and seasonal multiplier
# ---------------------------------------------------------------------------


class TestBaseAmount:
    def test_price_booking_composition(self) -> None:
        addon = quote_addon(
            AddOnSelection("per_group"), AddOnRates(per_group=Decimal("40")), participants=3, duration_days=1
        )
        snapshot = price_booking(
            unit_price=Decimal("100"), quantity=3, seasonal_multiplier=Decimal("1.2"), addon=addon
        )
        assert snapshot.unit_price == Decimal("120.00")
        assert snapshot.base_amount == Decimal("360.00")
        assert snapshot.gross_amount == snapshot.base_amount + snapshot.addon_amount == Decimal("400.00")
        assert snapshot.per_unit_total() == Decimal("133.33")

    def test_remaining_after_advance(self) -> None:
        snapshot = price_booking(unit_price=Decimal("2000"), quantity=2, billable_days=3)
        assert snapshot.remaining_after(Decimal("5000")) == Decimal("7000.00")

    @pytest.mark.parametrize("quantity,days", [(0, 1), (1, 0)])
    def test_rejects_empty_bookings(self, quantity: int, days: int) -> None:
        with pytest.raises(ValidationError):
            price_booking(unit_price=Decimal("10"), quantity=quantity, billable_days=days)

    def test_highest_priority_season_wins(self) -> None:
        rules = [_season("1.2", priority=1), _season("1.5", priority=5), _season("2.0", priority=9, is_active=False)]
        multiplier = pick_seasonal_multiplier(
            rules, start=date(2026, 4, 1), end=date(2026, 4, 3), category="trekking", region="Gandaki"
        )
        assert multiplier == Decimal("1.5")

    def test_season_filters_category_and_region(self) -> None:
        rules = [
            _season("1.3", categories=["wildlife"]),
            _season("1.4", regions=["Karnali"]),
            _season("1.1", categories=["trekking"], regions=["Gandaki"]),
        ]
        multiplier = pick_seasonal_multiplier(
            rules, start=date(2026, 4, 1), end=date(2026, 4, 3), category="trekking", region="Gandaki"
        )
        assert multiplier == Decimal("1.1")

    def test_no_matching_season(self) -> None:
        rules = [_season("1.5")]
        multiplier = pick_seasonal_multiplier(
            rules, start=date(2026, 8, 1), end=date(2026, 8, 3), category=None, region=None
        )
        assert multiplier == Decimal("1")


# ---------------------------------------------------------------------------
# Coupon eligibility
# ---------------------------------------------------------------------------


class TestCouponEligibility:
    def test_missing_coupon(self) -> None:
        with pytest.raises(CouponIneligible, match="Invalid or expired") as exc_info:
            coupon_discount(
                None,
                code="NOPE",
                gross_amount=Decimal("100"),
                duration_days=1,
                category=None,
                resource_kind=ResourceKind.TOUR,
                now=NOW,
            )
        assert exc_info.value.details == {"code": "NOPE"}

    def test_expired(self) -> None:
        with pytest.raises(CouponIneligible, match="Invalid or expired"):
            _apply_coupon(_coupon(valid_until=NOW - timedelta(days=1)))

    def test_not_yet_valid(self) -> None:
        with pytest.raises(CouponIneligible, match="Invalid or expired"):
            _apply_coupon(_coupon(valid_from=NOW + timedelta(hours=1)))

    def test_wrong_resource_kind(self) -> None:
        with pytest.raises(CouponIneligible, match="not valid for vehicle bookings"):
            _apply_coupon(_coupon(resource_kind="tour"))

    def test_usage_limit_reached(self) -> None:
        with pytest.raises(CouponIneligible, match="usage limit"):
            _apply_coupon(_coupon(usage_limit=5, usage_count=5))

    def test_per_user_limit_reached(self) -> None:
        with pytest.raises(CouponIneligible, match="Per-user limit"):
            _apply_coupon(_coupon(per_user_limit=1), user_redemptions=1)

    def test_already_redeemed_skips_usage_limits(self) -> None:
        coupon = _coupon(usage_limit=5, usage_count=5, per_user_limit=1)
        applied = _apply_coupon(coupon, user_redemptions=1, already_redeemed=True)
        assert applied.amount == Decimal("150.00")

    def test_minimum_amount(self) -> None:
        with pytest.raises(CouponIneligible, match="Minimum booking amount of NPR 5000.00"):
            _apply_coupon(_coupon(min_booking_amount=Decimal("5000")))

    def test_minimum_days(self) -> None:
        with pytest.raises(CouponIneligible, match="Minimum 10 days"):
            _apply_coupon(_coupon(min_days=10))

    def test_category_restriction(self) -> None:
        with pytest.raises(CouponIneligible, match="not applicable for jeep"):
            _apply_coupon(_coupon(categories=["bus", "van"]))

    def test_fixed_coupon_ignores_cap(self) -> None:
        applied = _apply_coupon(_coupon(value_type="fixed", value=Decimal("300"), max_discount=Decimal("150")))
        assert applied.amount == Decimal("300.00")


# ---------------------------------------------------------------------------
# Automatic discounts
# ---------------------------------------------------------------------------


class TestAutomaticDiscounts:
    def test_long_term_picks_highest_threshold_reached(self) -> None:
        rules = [
            _long_term_rule(7, "5", "percentage"),
            _long_term_rule(14, "10", "percentage"),
            _long_term_rule(30, "20", "percentage"),
        ]
        applied = long_term_discount(rules, duration_days=20, gross_amount=Decimal("10000"))
        assert applied.value == Decimal("10")
        assert applied.amount == Decimal("1000.00")

    def test_long_term_below_minimum_duration(self) -> None:
        assert long_term_discount([_long_term_rule(1, "100")], duration_days=6, gross_amount=Decimal("1000")) is None

    def test_promotion_rate_takes_priority(self) -> None:
        applied = promotion_discount(
            discount_active=True,
            discount_rate=Decimal("15"),
            discount_amount=Decimal("500"),
            gross_amount=Decimal("1000"),
        )
        assert applied.source == DiscountSource.PROMOTION
        assert applied.amount == Decimal("150.00")

    def test_inactive_promotion(self) -> None:
        assert (
            promotion_discount(
                discount_active=False, discount_rate=Decimal("15"), discount_amount=None, gross_amount=Decimal("1000")
            )
            is None
        )


def test_money_rounds_half_up() -> None:
    assert money("2.675") == Decimal("2.68")
    assert money(Decimal("2.665")) == Decimal("2.67")
