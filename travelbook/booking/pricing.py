"""Pricing calculator: pure functions producing a booking's price snapshot.

Nothing here touches the database. Callers load the resource facts and the
pricing rules (seasonal multipliers, guide/driver rates, coupons, long-term
discounts) and pass them in; the calculator returns immutable value objects.
The same functions run on create, update and reschedule, so a recalculated
snapshot is always produced by exactly the algorithm that produced the
original one.

Order of computation:

1. base amount = seasonally adjusted unit price x quantity x billable days
2. add-on amount (guide or driver) by pricing type, then the minimum-charge floor
3. gross amount = base + add-on
4. discounts, each computed against the gross amount and stacked additively
5. total = gross - discounts, never below zero
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from travelbook.booking.enums import AddOnPricingType, DiscountSource, DiscountValueType, ResourceKind
from travelbook.booking.errors import CouponIneligible, InvalidPricingType, ValidationError

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
ONE = Decimal("1")


def money(value: Decimal | int | float | str) -> Decimal:
    """Round a currency amount to cents, half-up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Seasonal adjustment
# ---------------------------------------------------------------------------


def pick_seasonal_multiplier(
    rules: Iterable[Any],
    *,
    start: date,
    end: date,
    category: str | None,
    region: str | None,
) -> Decimal:
    """Return the multiplier of the highest-priority rule matching the interval.

    A rule matches when it is active, its validity window overlaps
    ``[start, end]``, and its category/region lists are either empty or
    contain the resource's category/region. No match means 1.0.
    """
    matching = [
        rule
        for rule in rules
        if rule.is_active
        and rule.valid_from <= end
        and rule.valid_until >= start
        and (not rule.categories or category in rule.categories)
        and (not rule.regions or region in rule.regions)
    ]
    if not matching:
        return ONE
    best = max(matching, key=lambda rule: rule.priority)
    if best.price_multiplier is None:
        return ONE
    return Decimal(best.price_multiplier)


# ---------------------------------------------------------------------------
# Add-ons (guides for tours, drivers for vehicles)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AddOnRates:
    """Rates configured for an add-on service.

    ``surcharge_multiplier`` scales the raw amount up for difficult terrain
    (drivers); ``None`` or 1 means no surcharge.
    """

    per_day: Decimal | None = None
    per_person: Decimal | None = None
    per_group: Decimal | None = None
    minimum_charge: Decimal | None = None
    surcharge_multiplier: Decimal | None = None

    def rate_for(self, pricing_type: AddOnPricingType) -> Decimal | None:
        return {
            AddOnPricingType.PER_DAY: self.per_day,
            AddOnPricingType.PER_PERSON: self.per_person,
            AddOnPricingType.PER_GROUP: self.per_group,
        }[pricing_type]


@dataclass(frozen=True)
class AddOnSelection:
    """What the customer asked for: a pricing type and, for per-day pricing, a head count."""

    pricing_type: AddOnPricingType | str | None
    quantity: int | None = None


@dataclass(frozen=True)
class AddOnQuote:
    pricing_type: AddOnPricingType
    quantity: int | None
    rate: Decimal
    raw_amount: Decimal
    surcharge: Decimal
    minimum_charge: Decimal | None
    amount: Decimal
    floor_applied: bool = False


def resolve_pricing_type(value: AddOnPricingType | str | None, label: str = "add-on") -> AddOnPricingType:
    if value is None:
        raise InvalidPricingType(f"A {label} pricing type must be selected when a {label} is requested")
    try:
        return AddOnPricingType(value)
    except ValueError:
        raise InvalidPricingType(
            f"Unknown {label} pricing type {value!r}",
            details={"allowed": [t.value for t in AddOnPricingType]},
        ) from None


def quote_addon(
    selection: AddOnSelection,
    rates: AddOnRates,
    *,
    participants: int,
    duration_days: int,
    label: str = "add-on",
) -> AddOnQuote:
    """Price a guide or driver add-on.

    ``per_day``: rate x add-on count x days (the count is mandatory).
    ``per_person``: rate x participants (vehicles count units).
    ``per_group``: the flat rate.

    The minimum charge is compared against the computed total (raw amount plus
    any terrain surcharge) and replaces it when the total falls short.
    """
    pricing_type = resolve_pricing_type(selection.pricing_type, label)
    rate = rates.rate_for(pricing_type)
    if rate is None:
        raise InvalidPricingType(
            f"No {pricing_type.value} rate is configured for this {label}",
            details={"pricing_type": pricing_type.value},
        )
    rate = Decimal(rate)
    quantity = selection.quantity

    if pricing_type == AddOnPricingType.PER_DAY:
        if quantity is None or quantity < 1:
            raise ValidationError(
                f"Number of {label}s needed must be at least 1 when pricing is {pricing_type.value}",
                details={"pricing_type": pricing_type.value},
            )
        raw = rate * quantity * duration_days
    elif pricing_type == AddOnPricingType.PER_PERSON:
        raw = rate * participants
    else:
        raw = rate
    raw = money(raw)

    surcharge = ZERO
    if rates.surcharge_multiplier is not None and Decimal(rates.surcharge_multiplier) != ONE:
        surcharge = money(raw * (Decimal(rates.surcharge_multiplier) - ONE))

    amount = raw + surcharge
    minimum = money(rates.minimum_charge) if rates.minimum_charge is not None else None
    floor_applied = minimum is not None and amount < minimum
    if floor_applied:
        amount = minimum

    return AddOnQuote(
        pricing_type=pricing_type,
        quantity=quantity,
        rate=money(rate),
        raw_amount=raw,
        surcharge=surcharge,
        minimum_charge=minimum,
        amount=amount,
        floor_applied=floor_applied,
    )


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AppliedDiscount:
    source: DiscountSource
    value_type: DiscountValueType
    value: Decimal
    amount: Decimal
    code: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """JSON-safe form stored on the booking row."""
        data: dict[str, Any] = {
            "source": self.source.value,
            "value_type": self.value_type.value,
            "value": str(self.value),
            "amount": str(self.amount),
        }
        if self.code is not None:
            data["code"] = self.code
        return data


def _discount_amount(value_type: DiscountValueType, value: Decimal, gross_amount: Decimal) -> Decimal:
    if value_type == DiscountValueType.PERCENTAGE:
        return money(gross_amount * value / 100)
    return money(value)


def coupon_discount(
    coupon: Any | None,
    *,
    code: str,
    gross_amount: Decimal,
    duration_days: int,
    category: str | None,
    resource_kind: ResourceKind,
    now: datetime,
    user_redemptions: int = 0,
    already_redeemed: bool = False,
    currency: str = "NPR",
) -> AppliedDiscount | None:
    """Validate a customer-supplied coupon and compute its discount.

    An explicitly supplied code that fails any eligibility rule raises
    ``CouponIneligible`` with the reason; it is never silently dropped.
    ``already_redeemed`` is set when re-pricing a booking that already holds
    the coupon, so its own redemption does not count against the limits.
    """
    if (
        coupon is None
        or not coupon.is_active
        or (coupon.valid_from is not None and coupon.valid_from > now)
        or (coupon.valid_until is not None and coupon.valid_until < now)
        or not coupon.value
    ):
        raise CouponIneligible("Invalid or expired coupon code.", details={"code": code})

    if coupon.resource_kind is not None and coupon.resource_kind != resource_kind.value:
        raise CouponIneligible(
            f"This coupon is not valid for {resource_kind.value} bookings.",
            details={"code": code},
        )

    if not already_redeemed:
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise CouponIneligible("This coupon has reached its usage limit.", details={"code": code})
        if coupon.per_user_limit is not None and user_redemptions >= coupon.per_user_limit:
            raise CouponIneligible(
                f"You have already used this coupon {coupon.per_user_limit} time(s). Per-user limit reached.",
                details={"code": code, "per_user_limit": coupon.per_user_limit},
            )

    if coupon.min_booking_amount is not None and gross_amount < Decimal(coupon.min_booking_amount):
        raise CouponIneligible(
            f"Minimum booking amount of {currency} {money(coupon.min_booking_amount)} required for this coupon.",
            details={"code": code, "min_booking_amount": str(money(coupon.min_booking_amount))},
        )

    if coupon.min_days is not None and duration_days < coupon.min_days:
        raise CouponIneligible(
            f"Minimum {coupon.min_days} days required for this coupon.",
            details={"code": code, "min_days": coupon.min_days},
        )

    if coupon.categories and category not in coupon.categories:
        raise CouponIneligible(
            f"This coupon is not applicable for {category or 'this'} bookings.",
            details={"code": code, "categories": list(coupon.categories)},
        )

    value_type = DiscountValueType(coupon.value_type)
    value = Decimal(coupon.value)
    amount = _discount_amount(value_type, value, gross_amount)
    if value_type == DiscountValueType.PERCENTAGE and coupon.max_discount is not None:
        amount = min(amount, money(coupon.max_discount))
    if amount <= ZERO:
        return None
    return AppliedDiscount(
        source=DiscountSource.COUPON,
        value_type=value_type,
        value=value,
        amount=amount,
        code=coupon.code,
    )


def long_term_discount(
    rules: Iterable[Any],
    *,
    duration_days: int,
    gross_amount: Decimal,
    min_days: int = 7,
) -> AppliedDiscount | None:
    """Automatic discount for long bookings.

    Picks the active rule with the highest ``min_days`` not exceeding the
    booking's duration. Nothing applies below ``min_days``.
    """
    if duration_days < min_days:
        return None
    eligible = [rule for rule in rules if rule.is_active and rule.min_days <= duration_days and rule.value]
    if not eligible:
        return None
    rule = max(eligible, key=lambda r: r.min_days)
    value_type = DiscountValueType(rule.value_type)
    value = Decimal(rule.value)
    amount = _discount_amount(value_type, value, gross_amount)
    if amount <= ZERO:
        return None
    return AppliedDiscount(source=DiscountSource.LONG_TERM, value_type=value_type, value=value, amount=amount)


def promotion_discount(
    *,
    discount_active: bool,
    discount_rate: Decimal | None,
    discount_amount: Decimal | None,
    gross_amount: Decimal,
) -> AppliedDiscount | None:
    """Resource-level promotion: a percentage rate takes priority over a flat amount."""
    if not discount_active:
        return None
    if discount_rate is not None and Decimal(discount_rate) > 0:
        value_type, value = DiscountValueType.PERCENTAGE, Decimal(discount_rate)
    elif discount_amount is not None and Decimal(discount_amount) > 0:
        value_type, value = DiscountValueType.FIXED, Decimal(discount_amount)
    else:
        return None
    return AppliedDiscount(
        source=DiscountSource.PROMOTION,
        value_type=value_type,
        value=value,
        amount=_discount_amount(value_type, value, gross_amount),
    )


# ---------------------------------------------------------------------------
# Price snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PriceSnapshot:
    """Frozen price breakdown written onto a booking."""

    unit_price: Decimal
    seasonal_multiplier: Decimal
    quantity: int
    billable_days: int
    base_amount: Decimal
    addon: AddOnQuote | None
    gross_amount: Decimal
    discounts: tuple[AppliedDiscount, ...] = field(default_factory=tuple)
    discount_amount: Decimal = ZERO
    total_price: Decimal = ZERO

    @property
    def addon_amount(self) -> Decimal:
        return self.addon.amount if self.addon is not None else ZERO

    @property
    def coupon_code(self) -> str | None:
        for discount in self.discounts:
            if discount.source == DiscountSource.COUPON:
                return discount.code
        return None

    def discounts_as_json(self) -> list[dict[str, Any]]:
        return [d.as_dict() for d in self.discounts]

    def per_unit_total(self) -> Decimal:
        """Final total split across the quantity (per participant for tours)."""
        return money(self.total_price / self.quantity)

    def remaining_after(self, advance_amount: Decimal) -> Decimal:
        return money(self.total_price - Decimal(advance_amount))

    def with_discounts(self, discounts: Sequence[AppliedDiscount | None]) -> "PriceSnapshot":
        """Return a copy with the discounts applied.

        Discounts are kept in the given order. If together they would exceed
        the gross amount, the last ones are trimmed so that
        ``total == gross - sum(discounts)`` and ``total >= 0`` both hold.
        """
        remaining = self.gross_amount
        applied: list[AppliedDiscount] = []
        for discount in discounts:
            if discount is None or remaining <= ZERO:
                continue
            if discount.amount > remaining:
                discount = replace(discount, amount=remaining)
            applied.append(discount)
            remaining -= discount.amount
        discount_total = sum((d.amount for d in applied), ZERO)
        return replace(
            self,
            discounts=tuple(applied),
            discount_amount=money(discount_total),
            total_price=money(self.gross_amount - discount_total),
        )


def price_booking(
    *,
    unit_price: Decimal,
    quantity: int,
    billable_days: int = 1,
    seasonal_multiplier: Decimal = ONE,
    addon: AddOnQuote | None = None,
) -> PriceSnapshot:
    """Compute base and gross amounts; apply discounts afterwards with ``with_discounts``."""
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", details={"quantity": quantity})
    if billable_days < 1:
        raise ValidationError("Booking must span at least one day", details={"days": billable_days})
    adjusted = money(Decimal(unit_price) * Decimal(seasonal_multiplier))
    base = money(adjusted * quantity * billable_days)
    gross = base + (addon.amount if addon is not None else ZERO)
    return PriceSnapshot(
        unit_price=adjusted,
        seasonal_multiplier=Decimal(seasonal_multiplier),
        quantity=quantity,
        billable_days=billable_days,
        base_amount=base,
        addon=addon,
        gross_amount=money(gross),
        total_price=money(gross),
    )
