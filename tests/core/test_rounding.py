"""Rounding - elapsed minutes and half-up rounding to the configured unit.

Tests cover:
    - Nearest multiple, half rounds up
    - Positive work never rounds below one unit; zero stays zero
    - Elapsed time truncated to whole seconds, negative counts as zero
    - Unit parsing from command arguments and settings
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from timebill.core.domain_types import RoundingUnit
from timebill.core.errors import ValidationError
from timebill.core.rounding import elapsed_minutes, parse_rounding_unit, round_minutes

T0 = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("raw, unit, expected", [
    (Decimal(37), 15, 30),
    (Decimal("37.5"), 15, 45),
    (Decimal(7), 5, 5),
    (Decimal("7.5"), 5, 10),
    (Decimal(89), 60, 60),
    (Decimal(90), 60, 120),
    (Decimal(60), 60, 60),
    (Decimal(44), 10, 40),
    (Decimal(45), 10, 50),
])
def test_rounds_to_nearest_unit_half_up(raw, unit, expected):
    assert round_minutes(raw, unit) == expected


@pytest.mark.parametrize("raw, unit", [
    (Decimal(1), 15),
    (Decimal("0.0167"), 5),
    (Decimal(20), 60),
])
def test_positive_work_never_rounds_below_one_unit(raw, unit):
    assert round_minutes(raw, unit) == unit


def test_zero_stays_zero():
    assert round_minutes(Decimal(0), 15) == 0


def test_invalid_unit_rejected():
    with pytest.raises(ValidationError) as exc:
        round_minutes(Decimal(10), 7)
    assert exc.value.message.startswith("Invalid rounding unit: 7")


def test_elapsed_truncates_to_whole_seconds():
    end = T0 + timedelta(seconds=90, milliseconds=900)
    assert elapsed_minutes(T0, end) == Decimal("1.5")


def test_negative_elapsed_is_zero():
    assert elapsed_minutes(T0, T0 - timedelta(minutes=5)) == Decimal(0)


def test_parse_rounding_unit_accepts_strings_and_ints():
    assert parse_rounding_unit("30") is RoundingUnit.THIRTY
    assert parse_rounding_unit(5) is RoundingUnit.FIVE
    assert parse_rounding_unit(60.0) is RoundingUnit.SIXTY


@pytest.mark.parametrize("value", ["abc", None, 15.5, 0, 45])
def test_parse_rounding_unit_rejects_invalid(value):
    with pytest.raises(ValidationError):
        parse_rounding_unit(value)
