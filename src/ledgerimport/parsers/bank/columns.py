"""
Header keyword table and column resolution.

Each role lists the substrings that identify it in a lower-cased header cell.
Roles are resolved in table order and a header cell serves at most one role,
so "Description" can never also be read as a credit ("in") column.
Supporting a new bank dialect means adding keywords, not code.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DATE = "date"
DESCRIPTION = "description"
DEBIT = "debit"
CREDIT = "credit"
AMOUNT = "amount"
REFERENCE = "reference"

# Role -> header keywords, in resolution priority order
COLUMN_ROLES: Dict[str, List[str]] = {
    DATE: ["date"],
    DESCRIPTION: ["description", "narration", "particulars", "details", "memo"],
    DEBIT: ["debit", "withdrawal", "out"],
    CREDIT: ["credit", "deposit", "in"],
    AMOUNT: ["amount"],
    REFERENCE: ["reference", "transaction id", "ref"],
}

# Spreadsheet and PDF exports use a few extra spellings
EXTENDED_KEYWORDS: Dict[str, List[str]] = {
    DATE: ["transaction date", "txn date"],
    DESCRIPTION: ["remarks"],
    DEBIT: ["paid"],
    CREDIT: ["received"],
    REFERENCE: ["txn id"],
}

# A generic amount column only counts when it is not also a debit/credit column
AMOUNT_EXCLUDES = (DEBIT, CREDIT)


def build_role_table(
    *extras: Optional[Mapping[str, Iterable[str]]]
) -> Dict[str, List[str]]:
    """Base table plus any extra keyword sets, keeping role order."""
    table = {role: list(keywords) for role, keywords in COLUMN_ROLES.items()}
    for extra in extras:
        if not extra:
            continue
        for role, keywords in extra.items():
            if role not in table:
                logger.warning(f"Ignoring keywords for unknown column role: {role}")
                continue
            for keyword in keywords:
                keyword = str(keyword).lower()
                if keyword not in table[role]:
                    table[role].append(keyword)
    return table


@dataclass
class ColumnMap:
    """Resolved column index per role; None when the header lacks the role."""

    date: Optional[int] = None
    description: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    amount: Optional[int] = None
    reference: Optional[int] = None

    @property
    def has_date(self) -> bool:
        return self.date is not None

    def as_dict(self) -> Dict[str, Optional[int]]:
        return {
            DATE: self.date,
            DESCRIPTION: self.description,
            DEBIT: self.debit,
            CREDIT: self.credit,
            AMOUNT: self.amount,
            REFERENCE: self.reference,
        }


def _matches(cell: str, keywords: Sequence[str]) -> bool:
    return any(keyword in cell for keyword in keywords)


def resolve_columns(header: Sequence, role_table: Mapping[str, Sequence[str]] = None) -> ColumnMap:
    """
    Map header cells to roles.

    Args:
        header: Header row cells (any type; compared as lower-cased text)
        role_table: Role -> keywords; defaults to COLUMN_ROLES

    Returns:
        ColumnMap with the first matching, still unclaimed cell per role
    """
    role_table = role_table or COLUMN_ROLES
    cells = ["" if cell is None else str(cell).strip().lower() for cell in header]
    claimed = set()
    resolved: Dict[str, Optional[int]] = {}

    for role, keywords in role_table.items():
        resolved[role] = None
        for index, cell in enumerate(cells):
            if index in claimed or not cell:
                continue
            if not _matches(cell, keywords):
                continue
            if role == AMOUNT and any(
                _matches(cell, role_table.get(excluded, ())) for excluded in AMOUNT_EXCLUDES
            ):
                continue
            resolved[role] = index
            claimed.add(index)
            break

    columns = ColumnMap(**{role: resolved.get(role) for role in ColumnMap().as_dict()})
    logger.debug(f"Resolved columns {columns.as_dict()} from header {cells}")
    return columns
