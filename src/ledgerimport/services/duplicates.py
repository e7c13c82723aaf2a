"""
Statement duplicate detection.

Compares normalized preview rows against the existing ledger to flag rows
that were probably imported before.

A row is a duplicate of a ledger record when:
- the record has the same direction (income rows vs incomes, expense rows
  vs expenses),
- amounts differ by less than one cent and the dates are equal, and
- the row description is similar enough to the record's free-text field
  (income ``source`` / expense ``category``; ledger records carry no
  description of their own).

The first qualifying record wins, so the order of the ledger collections
decides which id is reported, not whether a row is flagged.
"""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from ledgerimport.core.ledger import Expense, Income
from ledgerimport.parsers.bank.models import ImportPreviewRow, TransactionType

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7
DEFAULT_AMOUNT_TOLERANCE = Decimal("0.01")

LedgerRecord = Union[Income, Expense]


def _fold(text: Optional[str]) -> str:
    return " ".join((text or "").lower().split())


def string_similarity(first: Optional[str], second: Optional[str]) -> float:
    """
    Similarity of two descriptions in [0, 1].

    1.0 when equal ignoring case and whitespace, 0.8 when one contains the
    other, otherwise the word overlap 2 * shared / (words1 + words2).
    """
    s1 = _fold(first)
    s2 = _fold(second)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if s1 in s2 or s2 in s1:
        return 0.8

    words1 = s1.split(" ")
    words2 = s2.split(" ")
    shared = sum(1 for word in words1 if word in words2)
    return (shared * 2) / (len(words1) + len(words2))


def _comparison_text(record: LedgerRecord) -> str:
    if isinstance(record, Income):
        return record.source or ""
    return record.category or ""


def _iso(value) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value) if value is not None else ""


def is_duplicate_of(
    row: ImportPreviewRow,
    record: LedgerRecord,
    threshold: float = DEFAULT_THRESHOLD,
    amount_tolerance: Decimal = DEFAULT_AMOUNT_TOLERANCE,
) -> bool:
    """Check a single preview row against a single ledger record."""
    # Cheap rejection first: amount and date must both match exactly
    if abs(Decimal(str(row.amount)) - Decimal(str(record.amount))) >= amount_tolerance:
        return False
    if _iso(row.date) != _iso(record.date):
        return False

    return string_similarity(row.description, _comparison_text(record)) >= threshold


def detect_statement_duplicates(
    rows: Sequence[ImportPreviewRow],
    existing_incomes: Sequence[Income],
    existing_expenses: Sequence[Expense],
    threshold: float = DEFAULT_THRESHOLD,
    amount_tolerance=DEFAULT_AMOUNT_TOLERANCE,
) -> List[ImportPreviewRow]:
    """
    Flag probable re-imports.

    Args:
        rows: Normalized preview rows
        existing_incomes: Ledger incomes
        existing_expenses: Ledger expenses
        threshold: Minimum description similarity
        amount_tolerance: Amounts closer than this are equal

    Returns:
        New rows with ``is_duplicate`` / ``duplicate_of`` set; inputs are untouched
    """
    amount_tolerance = Decimal(str(amount_tolerance))
    flagged = []

    for row in rows:
        candidates = existing_incomes if row.type == TransactionType.INCOME else existing_expenses
        match = next(
            (record for record in candidates if is_duplicate_of(row, record, threshold, amount_tolerance)),
            None,
        )
        flagged.append(replace(
            row,
            is_duplicate=match is not None,
            duplicate_of=match.id if match is not None else None,
        ))

    count = sum(1 for row in flagged if row.is_duplicate)
    if count:
        logger.info(f"Flagged {count} of {len(flagged)} rows as probable duplicates")
    return flagged
