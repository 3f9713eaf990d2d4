"""Human-readable booking codes, e.g. ``TBK-MB3K9Q2L-7XQ2ZD``."""

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_uppercase


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_booking_code(prefix: str) -> str:
    """Return ``<prefix>-<base36 millisecond timestamp>-<6 random chars>``.

    Uniqueness is ultimately enforced by the unique index on the code column;
    a collision surfaces as a retryable conflict.
    """
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{prefix}-{timestamp}-{suffix}"
