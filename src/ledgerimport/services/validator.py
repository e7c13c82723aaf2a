"""Row validator: human-readable defects for a preview row. Advisory only."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Sequence

from ledgerimport.parsers.bank.models import ImportPreviewRow, TransactionType


def validate_transaction(row: ImportPreviewRow) -> List[str]:
    """
    List everything that would make the row unsafe to commit.

    Returns:
        Defect messages; empty when the row is well formed
    """
    errors = []

    if not row.date:
        errors.append("Missing date")
    else:
        try:
            date.fromisoformat(str(row.date))
        except ValueError:
            errors.append("Invalid date format")

    if not row.description or not str(row.description).strip():
        errors.append("Missing description")

    try:
        amount = Decimal(str(row.amount)) if row.amount is not None else None
    except InvalidOperation:
        amount = None
    if amount is None or not amount.is_finite() or amount <= 0:
        errors.append("Invalid amount")

    if row.type not in TransactionType.values():
        errors.append("Invalid transaction type")

    return errors


def validate_rows(rows: Sequence[ImportPreviewRow]) -> Dict[str, List[str]]:
    """Defects keyed by row id, for rows that have any."""
    defects = {}
    for row in rows:
        errors = validate_transaction(row)
        if errors:
            defects[row.id] = errors
    return defects
