"""
Booking reference and fare derivation
"""
import re
import secrets
from decimal import Decimal, ROUND_CEILING
from typing import Optional, Union

from reservation.core.config import settings

BOOKING_REFERENCE_PATTERN = re.compile(r"^LB[A-F0-9]{4}-[A-F0-9]{4}-[A-F0-9]{4}$")

Number = Union[int, float, str, Decimal]


def _segment() -> str:
    return secrets.token_hex(2).upper()


def generate_booking_reference() -> str:
    """
    Generate a human-presentable booking reference: LBXXXX-XXXX-XXXX (hex).

    48 random bits, so collisions are unlikely but possible; the bookings
    table keeps the reference unique and creation retries on collision.
    """
    return f"LB{_segment()}-{_segment()}-{_segment()}"


def is_valid_booking_reference(reference: str) -> bool:
    """Validate a booking reference format"""
    return bool(BOOKING_REFERENCE_PATTERN.match(reference or ""))


def trip_price(
    distance: Number,
    rate_per_distance_unit: Number,
    is_peak: bool = False,
    rounding_unit: Optional[int] = None,
) -> Decimal:
    """
    Per-seat fare for a trip.

    Rounds UP to the next multiple of `rounding_unit` (default
    PRICE_ROUNDING_UNIT), never down. Peak departures apply PEAK_MULTIPLIER.
    """
    distance = Decimal(str(distance))
    rate = Decimal(str(rate_per_distance_unit))
    if distance < 0 or rate < 0:
        raise ValueError("distance and rate must not be negative")

    unit = Decimal(rounding_unit or settings.PRICE_ROUNDING_UNIT)
    if unit <= 0:
        raise ValueError("rounding unit must be positive")

    raw = distance * rate
    if is_peak:
        raw *= Decimal(str(settings.PEAK_MULTIPLIER))

    return (raw / unit).to_integral_value(rounding=ROUND_CEILING) * unit
