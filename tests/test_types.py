"""Money conversion."""

from decimal import Decimal

import pytest

from marketplace import to_minor_units, from_minor_units


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (Decimal("19.99"), 1999),
        (19.99, 1999),
        ("0.29", 29),
        (5, 500),
        (Decimal("0.015"), 2),
        (Decimal("0.004"), 0),
    ],
)
def test_to_minor_units(amount: Decimal | float | int | str, expected: int) -> None:
    assert to_minor_units(amount) == expected


def test_from_minor_units_is_two_place_decimal() -> None:
    assert from_minor_units(1999) == Decimal("19.99")
    assert str(from_minor_units(500)) == "5.00"
