"""Invoice numbering: INV-{YYYYMMDD}-{seq:03d}."""

import re
from datetime import date

_NUMBER_RE = re.compile(r"^INV-(\d{8})-(\d{3,})$")


def number_prefix(period_start: date) -> str:
    return f"INV-{period_start.strftime('%Y%m%d')}-"


def format_invoice_number(period_start: date, seq: int) -> str:
    return f"{number_prefix(period_start)}{seq:03d}"


def next_sequence(existing_numbers: list[str], period_start: date) -> int:
    """Next free sequence for the date: count of numbers for that date + 1,
    bumped past any number already taken."""
    prefix = number_prefix(period_start)
    taken = set()
    for number in existing_numbers:
        match = _NUMBER_RE.match(number)
        if match and number.startswith(prefix):
            taken.add(int(match.group(2)))
    seq = len(taken) + 1
    while seq in taken:
        seq += 1
    return seq
