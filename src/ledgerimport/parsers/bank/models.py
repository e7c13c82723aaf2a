"""
Bank statement transaction models.

Dataclasses for representing parsed bank statements and the preview rows
built from them.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional


STATEMENT_SOURCE = "bank_statement"


class TransactionType(str, Enum):
    """Direction of a statement line; the amount itself is always positive."""

    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class ParsedTransaction:
    """Represents a single transaction recovered from a statement."""

    date: Optional[str]  # ISO YYYY-MM-DD
    description: str
    amount: Decimal
    type: TransactionType = TransactionType.EXPENSE
    category: Optional[str] = None
    reference: Optional[str] = None
    source: str = STATEMENT_SOURCE
    # Traceability back to the source file
    raw_debit: Optional[Decimal] = None
    raw_credit: Optional[Decimal] = None
    row_index: Optional[int] = None

    def __post_init__(self):
        """Convert numeric types to Decimal and keep the amount non-negative."""
        if self.amount is not None:
            self.amount = abs(_to_decimal(self.amount))
        if self.raw_debit is not None:
            self.raw_debit = _to_decimal(self.raw_debit)
        if self.raw_credit is not None:
            self.raw_credit = _to_decimal(self.raw_credit)

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Amount with direction applied (income positive, expense negative)."""
        return self.amount if self.is_income else -self.amount


@dataclass
class ImportPreviewRow(ParsedTransaction):
    """
    A normalized, not-yet-committed candidate ledger entry.

    ``id`` is a handle scoped to one import session, not a ledger id.
    ``duplicate_of`` holds the ledger id of the suspected original.
    """

    id: str = ""
    include: bool = True
    is_duplicate: bool = False
    duplicate_of: Optional[str] = None


@dataclass
class ParseResult:
    """Result of parsing a bank statement."""

    success: bool
    transactions: List[ParsedTransaction] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    source_file: str = ""
    password_required: bool = False

    def add_error(self, error: str) -> None:
        """Add an error message."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    def fail(self, error: str) -> "ParseResult":
        """Mark the whole file unusable."""
        self.success = False
        self.add_error(error)
        return self

    @property
    def transaction_count(self) -> int:
        """Get number of transactions parsed."""
        return len(self.transactions)

    @property
    def total_debits(self) -> Decimal:
        """Total of expense amounts."""
        return sum((t.amount for t in self.transactions if not t.is_income), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        """Total of income amounts."""
        return sum((t.amount for t in self.transactions if t.is_income), Decimal("0"))
