"""Invoice Numbering - INV-YYYYMMDD-NNN sequences per period start date."""

from datetime import date

from timebill.core.invoice_numbering import format_invoice_number, next_sequence

D = date(2025, 3, 1)


def test_format_pads_sequence():
    assert format_invoice_number(D, 1) == "INV-20250301-001"
    assert format_invoice_number(D, 1000) == "INV-20250301-1000"


def test_first_number_for_a_date():
    assert next_sequence([], D) == 1


def test_counts_existing_numbers_for_the_date():
    assert next_sequence(["INV-20250301-001", "INV-20250301-002"], D) == 3


def test_skips_numbers_already_taken():
    # one invoice exists but holds sequence 2
    assert next_sequence(["INV-20250301-002"], D) == 3


def test_other_dates_and_foreign_numbers_ignored():
    assert next_sequence(["INV-20250302-001", "LEGACY-7"], D) == 1
