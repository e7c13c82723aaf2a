"""
Base class for bank statement parsers.

Provides the row logic shared by the CSV, Excel and PDF parsers: column
resolution, debit/credit inference, zero-amount rejection and the split
between row-level and file-level failures.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from ledgerimport.core.preferences import ImportPreferences
from ledgerimport.parsers.bank.columns import ColumnMap, build_role_table, resolve_columns
from ledgerimport.parsers.bank.models import ParsedTransaction, ParseResult
from ledgerimport.parsers.bank.utils import (
    clean_cell,
    determine_type,
    parse_amount,
    parse_date,
    parse_signed_amount,
)

logger = logging.getLogger(__name__)

UNKNOWN_DESCRIPTION = "Unknown"


def cell_at(row: Sequence, index: Optional[int]) -> Any:
    """Cell value at index, or None when the column is missing or the row is short."""
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def split_debit_credit(row: Sequence, columns: ColumnMap) -> Tuple[Decimal, Decimal]:
    """
    Work out debit and credit magnitudes for one row.

    Dedicated debit/credit columns are used when present. When both are
    empty and the header has a generic amount column, the sign of that
    amount decides the direction: positive is a credit, negative a debit.
    """
    debit = parse_amount(cell_at(row, columns.debit)) if columns.debit is not None else Decimal("0")
    credit = parse_amount(cell_at(row, columns.credit)) if columns.credit is not None else Decimal("0")

    if columns.amount is not None and debit == 0 and credit == 0:
        signed = parse_signed_amount(cell_at(row, columns.amount))
        if signed > 0:
            credit = signed
        elif signed < 0:
            debit = -signed

    return debit, credit


def build_transaction(
    date: str,
    description: str,
    debit: Decimal,
    credit: Decimal,
    reference: Optional[str] = None,
    row_index: Optional[int] = None,
) -> Optional[ParsedTransaction]:
    """
    Create a ParsedTransaction, or None when the row carries no amount.

    The amount is the larger of debit and credit; direction lives in ``type``.
    """
    final_amount = max(debit, credit)
    if final_amount == 0:
        return None

    return ParsedTransaction(
        date=date,
        description=description,
        amount=final_amount,
        type=determine_type(debit, credit),
        reference=reference or None,
        raw_debit=debit if debit > 0 else None,
        raw_credit=credit if credit > 0 else None,
        row_index=row_index,
    )


class StatementParser(ABC):
    """Abstract base class for statement parsers."""

    FORMAT_NAME: str = ""  # Override in subclass, used in user-facing messages
    EXTRA_KEYWORDS = None  # Additional header keywords for this format
    INVALID_DATE_MESSAGE = "Invalid date format"

    def __init__(self, preferences: ImportPreferences = None):
        """
        Initialize parser.

        Args:
            preferences: Import preferences; defaults when omitted
        """
        self.preferences = preferences or ImportPreferences.default()
        self.role_table = build_role_table(self.EXTRA_KEYWORDS, self.preferences.column_keywords)

    def resolve_columns(self, header: Sequence) -> ColumnMap:
        return resolve_columns(header, self.role_table)

    # ------------------------------------------------------------------
    # Row handling shared by the grid formats (CSV and spreadsheet)
    # ------------------------------------------------------------------

    @abstractmethod
    def _row_is_blank(self, row: Sequence) -> bool:
        """True for rows that should be skipped without an error."""

    def _coerce_date(self, value) -> Optional[str]:
        return parse_date(value)

    def _clean_description(self, text: str) -> str:
        return text.strip()

    def _reference(self, row: Sequence, columns: ColumnMap) -> Optional[str]:
        if columns.reference is None:
            return None
        return clean_cell(cell_at(row, columns.reference))

    def _description(self, row: Sequence, columns: ColumnMap) -> str:
        if columns.description is None:
            # No description column: second column is the usual spot
            text = clean_cell(cell_at(row, 1))
        else:
            text = clean_cell(cell_at(row, columns.description))
        return self._clean_description(text) or UNKNOWN_DESCRIPTION

    def _parse_grid_rows(
        self,
        rows: List[Sequence],
        columns: ColumnMap,
        result: ParseResult,
        first_row_number: int,
    ) -> None:
        """
        Turn data rows into transactions, recording row-level errors.

        Args:
            rows: Data rows (header excluded)
            columns: Resolved header roles
            result: ParseResult to fill
            first_row_number: 1-based source row number of rows[0]
        """
        for offset, row in enumerate(rows):
            row_number = first_row_number + offset

            if self._row_is_blank(row):
                continue

            txn_date = self._coerce_date(cell_at(row, columns.date))
            if not txn_date:
                result.add_error(f"Row {row_number}: {self.INVALID_DATE_MESSAGE}")
                continue

            debit, credit = split_debit_credit(row, columns)
            reference = self._reference(row, columns)

            transaction = build_transaction(
                date=txn_date,
                description=self._description(row, columns),
                debit=debit,
                credit=credit,
                reference=reference,
                row_index=row_number,
            )
            if transaction is None:
                result.add_error(f"Row {row_number}: Zero amount, skipping")
                continue

            result.transactions.append(transaction)

    def _finish(self, result: ParseResult) -> ParseResult:
        """File-level verdict once every row has been seen."""
        if not result.transactions:
            result.fail(f"No valid transactions found in {self.FORMAT_NAME}")
        else:
            result.success = True
            logger.info(
                f"Parsed {result.transaction_count} transactions from {self.FORMAT_NAME} "
                f"({len(result.errors)} rows rejected)"
            )
        return result
