"""Rounding - elapsed-time measurement and rounding for stopped timers.

Invariants:
    - Elapsed time is truncated to whole seconds, kept as exact fractional minutes
    - rounded = round_half_up(raw / unit) * unit
    - A positive raw duration never rounds below one unit; 0 only when raw == 0
    - Negative elapsed time (clock moved back) counts as 0
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from timebill.core.domain_types import RoundingUnit
from timebill.core.errors import ValidationError

VALID_UNITS = tuple(u.value for u in RoundingUnit)


def parse_rounding_unit(value: object) -> RoundingUnit:
    """Coerce a command argument or setting into a RoundingUnit."""
    try:
        number = int(value)
        if isinstance(value, float) and value != number:
            raise ValueError(value)
        return RoundingUnit(number)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid rounding unit: {value}. Must be one of {list(VALID_UNITS)}",
            field="roundingUnit",
        )


def elapsed_minutes(start: datetime, end: datetime) -> Decimal:
    """Whole elapsed seconds between two instants, expressed in minutes."""
    seconds = int((end - start).total_seconds())
    if seconds <= 0:
        return Decimal(0)
    return Decimal(seconds) / Decimal(60)


def round_minutes(raw_minutes: Decimal, unit: RoundingUnit | int) -> int:
    """Round raw minutes to the nearest multiple of unit, half up."""
    unit = parse_rounding_unit(unit)
    if raw_minutes <= 0:
        return 0
    steps = (raw_minutes / Decimal(int(unit))).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(int(steps), 1) * int(unit)
