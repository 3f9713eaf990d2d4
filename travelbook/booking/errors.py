"""Typed booking errors.

Every business-rule failure in the engine is one of these. Each carries an
``ErrorKind`` tag, a user-facing message that explains the problem, and a
``details`` dict with machine-readable context (for capacity failures the
remaining and requested counts). The API layer turns them into JSON error
responses; nothing in the service layer raises ``HTTPException``.
"""

import enum
from typing import Any


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    VALIDATION_ERROR = "validation_error"
    INVALID_PRICING_TYPE = "invalid_pricing_type"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    COUPON_INELIGIBLE = "coupon_ineligible"


class BookingError(Exception):
    """Base class for all booking engine errors."""

    kind: ErrorKind

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.value, "message": self.message, "details": self.details}


class NotFound(BookingError):
    kind = ErrorKind.NOT_FOUND


class ResourceUnavailable(BookingError):
    kind = ErrorKind.RESOURCE_UNAVAILABLE


class CapacityExceeded(BookingError):
    """Raised when a request asks for more seats or vehicles than remain."""

    kind = ErrorKind.CAPACITY_EXCEEDED

    def __init__(self, available: int, requested: int, unit: str = "seats") -> None:
        available = max(available, 0)
        super().__init__(
            f"Only {available} {unit} available, {requested} requested",
            details={"available": available, "requested": requested, "shortfall": requested - available},
        )
        self.available = available
        self.requested = requested


class ValidationError(BookingError):
    kind = ErrorKind.VALIDATION_ERROR


class InvalidPricingType(BookingError):
    kind = ErrorKind.INVALID_PRICING_TYPE


class InvalidState(BookingError):
    kind = ErrorKind.INVALID_STATE


class Conflict(BookingError):
    kind = ErrorKind.CONFLICT


class CouponIneligible(BookingError):
    kind = ErrorKind.COUPON_INELIGIBLE
