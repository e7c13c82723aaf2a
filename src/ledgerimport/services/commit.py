"""
Commit reviewed preview rows to the ledger.

Only rows the user kept (``include``), that are not flagged duplicates (unless
the caller asks otherwise) and that pass validation are written. Income rows
become one-time incomes named after the description; expense rows become
bank-transfer expenses in the row's category.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from ledgerimport.core.exceptions import LedgerImportError
from ledgerimport.core.ledger import Expense, Income, LedgerStore, new_ledger_id
from ledgerimport.parsers.bank.models import ImportPreviewRow, TransactionType
from ledgerimport.services.validator import validate_transaction

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"
PAYMENT_METHOD = "Bank Transfer"
INCOME_TYPE = "one-time"


@dataclass
class ImportResult:
    """Outcome of committing one import session."""

    success: bool = False
    imported_income: int = 0
    imported_expenses: int = 0
    skipped_duplicates: int = 0
    skipped_excluded: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def imported_total(self) -> int:
        return self.imported_income + self.imported_expenses


def _notes(row: ImportPreviewRow):
    return f"Ref: {row.reference}" if row.reference else None


def row_to_income(row: ImportPreviewRow) -> Income:
    """Ledger income for an income preview row."""
    return Income(
        id=new_ledger_id("income"),
        amount=row.amount,
        source=row.description,
        date=row.date,
        type=INCOME_TYPE,
        notes=_notes(row),
    )


def row_to_expense(row: ImportPreviewRow) -> Expense:
    """Ledger expense for an expense preview row."""
    return Expense(
        id=new_ledger_id("expense"),
        amount=row.amount,
        category=row.category or DEFAULT_CATEGORY,
        date=row.date,
        payment_method=PAYMENT_METHOD,
        notes=_notes(row),
    )


def commit_rows(
    rows: Sequence[ImportPreviewRow],
    store: LedgerStore,
    skip_duplicates: bool = True,
) -> ImportResult:
    """
    Write the selected preview rows to the ledger.

    Args:
        rows: Reviewed preview rows
        store: Ledger to write to
        skip_duplicates: Leave rows flagged as duplicates out

    Returns:
        ImportResult with counts and per-row errors
    """
    result = ImportResult()
    selected = []

    for row in rows:
        if not row.include:
            result.skipped_excluded += 1
        elif skip_duplicates and row.is_duplicate:
            result.skipped_duplicates += 1
        elif validate_transaction(row):
            result.skipped_excluded += 1
        else:
            selected.append(row)

    if not selected:
        result.errors.append("No valid transactions to import")
        return result

    for row in selected:
        try:
            if row.type == TransactionType.INCOME:
                store.add_income(row_to_income(row))
                result.imported_income += 1
            else:
                store.add_expense(row_to_expense(row))
                result.imported_expenses += 1
        except LedgerImportError as e:
            logger.warning(f"Failed to import row {row.id}: {e.message}")
            result.errors.append(f"Failed to import {row.description}: {e.message}")

    result.success = result.imported_total > 0
    logger.info(
        f"Imported {result.imported_income} incomes and {result.imported_expenses} expenses "
        f"({result.skipped_duplicates} duplicates, {result.skipped_excluded} excluded)"
    )
    return result
