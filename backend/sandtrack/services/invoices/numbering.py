"""Invoice numbers, payment terms and due dates.

Invoice numbers are scoped by calendar year and padded to four digits:
``INV-2024-0001``, ``INV-2024-0002``, ...
"""

import re
from datetime import date, timedelta
from typing import Optional

INVOICE_PREFIX = "INV"
DEFAULT_PAYMENT_TERMS_DAYS = 30

_TERMS_DAYS = re.compile(r"\d+")
_INVOICE_NUMBER = re.compile(rf"^{INVOICE_PREFIX}-(\d{{4}})-(\d+)$")


def format_invoice_number(year: int, sequence: int) -> str:
    if sequence < 1:
        raise ValueError(f"Invoice sequence must be positive, got {sequence}")
    return f"{INVOICE_PREFIX}-{year}-{sequence:04d}"


def invoice_number_prefix(year: int) -> str:
    """Prefix shared by every invoice number of a year, e.g. ``INV-2024-``."""
    return f"{INVOICE_PREFIX}-{year}-"


def parse_invoice_sequence(invoice_number: str) -> Optional[int]:
    """
    Extract the sequence from an invoice number.

    >>> parse_invoice_sequence("INV-2024-0042")
    42
    """
    match = _INVOICE_NUMBER.match(invoice_number)
    if match is None:
        return None
    return int(match.group(2))


def next_invoice_number(
    year: int,
    issued_count: int,
    highest_sequence: Optional[int] = None,
) -> str:
    """
    Compute the next invoice number for a year.

    The sequence is one past the number of invoices already issued that
    year. When the highest issued sequence is known (after a number
    collision) it is used if larger, so the recomputed number cannot hit
    the same collision again.

    Args:
        year: Calendar year of the issue date
        issued_count: Invoices already numbered in that year
        highest_sequence: Largest sequence already issued in that year

    Returns:
        Invoice number such as ``INV-2024-0001``
    """
    base = max(issued_count, highest_sequence or 0)
    return format_invoice_number(year, base + 1)


def parse_payment_terms(
    terms: Optional[str],
    default: int = DEFAULT_PAYMENT_TERMS_DAYS,
) -> int:
    """
    Read the payment term in days from free-text MSA terms.

    The first integer in the text wins; missing, empty or unparsable terms
    fall back to default.

    >>> parse_payment_terms("Net 45")
    45
    >>> parse_payment_terms("due on receipt")
    30
    """
    if not terms:
        return default
    match = _TERMS_DAYS.search(terms)
    if match is None:
        return default
    return int(match.group(0))


def compute_due_date(issue_date: date, terms_days: int) -> date:
    return issue_date + timedelta(days=terms_days)
