"""
Tests for invoice numbering and payment terms.
"""

from datetime import date

import pytest

from sandtrack.services.invoices.numbering import (
    compute_due_date,
    format_invoice_number,
    invoice_number_prefix,
    next_invoice_number,
    parse_invoice_sequence,
    parse_payment_terms,
)


class TestInvoiceNumbers:
    def test_first_invoice_of_the_year(self) -> None:
        assert next_invoice_number(2024, 0) == "INV-2024-0001"

    def test_sequence_follows_issued_count(self) -> None:
        assert next_invoice_number(2024, 41) == "INV-2024-0042"

    def test_highest_sequence_wins_after_collision(self) -> None:
        assert next_invoice_number(2024, 1, highest_sequence=2) == "INV-2024-0003"

    def test_lower_highest_sequence_is_ignored(self) -> None:
        assert next_invoice_number(2024, 5, highest_sequence=3) == "INV-2024-0006"

    def test_sequences_beyond_four_digits(self) -> None:
        assert format_invoice_number(2025, 12345) == "INV-2025-12345"

    def test_sequence_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            format_invoice_number(2024, 0)

    def test_prefix(self) -> None:
        assert invoice_number_prefix(2024) == "INV-2024-"

    @pytest.mark.parametrize(
        "number,expected",
        [
            ("INV-2024-0042", 42),
            ("INV-2024-10001", 10001),
            ("INV-24-0001", None),
            ("2024-0001", None),
        ],
    )
    def test_parse_sequence(self, number: str, expected) -> None:
        assert parse_invoice_sequence(number) == expected


class TestPaymentTerms:
    @pytest.mark.parametrize(
        "terms,expected",
        [
            ("Net 45", 45),
            ("net 60 days", 60),
            ("15", 15),
            ("Net 30, 2% 10", 30),
        ],
    )
    def test_first_integer_wins(self, terms: str, expected: int) -> None:
        assert parse_payment_terms(terms) == expected

    @pytest.mark.parametrize("terms", [None, "", "due on receipt"])
    def test_default_terms(self, terms) -> None:
        assert parse_payment_terms(terms) == 30
        assert parse_payment_terms(terms, default=60) == 60

    def test_due_date(self) -> None:
        assert compute_due_date(date(2024, 3, 15), 45) == date(2024, 4, 29)
        assert compute_due_date(date(2024, 12, 20), 30) == date(2025, 1, 19)
