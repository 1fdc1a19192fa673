"""
Booking reference and fare tests
"""
from decimal import Decimal

import pytest

from reservation.services.pricing import (
    generate_booking_reference,
    is_valid_booking_reference,
    trip_price,
)


def test_booking_reference_format():
    """Generated references follow LBXXXX-XXXX-XXXX with uppercase hex"""
    for _ in range(50):
        reference = generate_booking_reference()
        assert len(reference) == 16
        assert reference.startswith("LB")
        assert is_valid_booking_reference(reference)


def test_booking_references_differ():
    references = {generate_booking_reference() for _ in range(200)}
    # 48 random bits; a collision in 200 draws would be extraordinary
    assert len(references) == 200


@pytest.mark.parametrize("reference", [
    "",
    "LB1234-5678",
    "lb1a2b-3c4d-5e6f",
    "XX1A2B-3C4D-5E6F",
    "LB1A2B-3C4D-5E6G",
    "LB1A2B3C4D5E6F",
])
def test_invalid_booking_references(reference):
    assert not is_valid_booking_reference(reference)


def test_trip_price_exact_multiple():
    assert trip_price(120, 1250) == Decimal("150000")


def test_trip_price_rounds_up_to_unit():
    """Never rounds down, even by one unit"""
    assert trip_price(101, 1001) == Decimal("102000")  # 101101
    assert trip_price(100, Decimal("10.01")) == Decimal("2000")  # 1001


def test_trip_price_peak_multiplier():
    # 100 km * 1000 = 100000, * 1.2 = 120000
    assert trip_price(100, 1000, is_peak=True) == Decimal("120000")
    # 95 km * 1100 = 104500, * 1.2 = 125400 -> 126000
    assert trip_price(95, 1100, is_peak=True) == Decimal("126000")


def test_trip_price_custom_rounding_unit():
    assert trip_price(101, 1001, rounding_unit=500) == Decimal("101500")


def test_trip_price_zero_distance():
    assert trip_price(0, 1000) == Decimal("0")


@pytest.mark.parametrize("distance, rate, unit", [
    (-1, 1000, None),
    (100, -5, None),
    (100, 1000, -1000),
])
def test_trip_price_rejects_bad_inputs(distance, rate, unit):
    with pytest.raises(ValueError):
        trip_price(distance, rate, rounding_unit=unit)
