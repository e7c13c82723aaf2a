"""
Ledger records and the store interface the import pipeline talks to.

The pipeline only reads existing incomes and expenses (for duplicate
detection). Writing happens in the commit step, through the same interface.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from ledgerimport.core.exceptions import LedgerStoreError

logger = logging.getLogger(__name__)


@dataclass
class Income:
    """An income entry already in the ledger."""

    id: str
    amount: Decimal
    source: str
    date: str  # ISO date string
    type: str = "one-time"
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))


@dataclass
class Expense:
    """An expense entry already in the ledger."""

    id: str
    amount: Decimal
    category: str
    date: str  # ISO date string
    payment_method: str = "Bank Transfer"
    notes: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))


def new_ledger_id(kind: str) -> str:
    """Generate an id for a newly committed record."""
    return f"{kind}-{uuid.uuid4().hex[:12]}"


class LedgerStore(ABC):
    """Read/write access to the caller's income and expense collections."""

    @abstractmethod
    def list_incomes(self) -> List[Income]:
        pass

    @abstractmethod
    def list_expenses(self) -> List[Expense]:
        pass

    @abstractmethod
    def add_income(self, income: Income) -> Income:
        pass

    @abstractmethod
    def add_expense(self, expense: Expense) -> Expense:
        pass


class InMemoryLedgerStore(LedgerStore):
    """Ledger held in plain lists."""

    def __init__(self, incomes: List[Income] = None, expenses: List[Expense] = None):
        self.incomes: List[Income] = list(incomes or [])
        self.expenses: List[Expense] = list(expenses or [])

    def list_incomes(self) -> List[Income]:
        return list(self.incomes)

    def list_expenses(self) -> List[Expense]:
        return list(self.expenses)

    def add_income(self, income: Income) -> Income:
        self.incomes.append(income)
        return income

    def add_expense(self, expense: Expense) -> Expense:
        self.expenses.append(expense)
        return expense


class JsonLedgerStore(InMemoryLedgerStore):
    """
    Ledger backed by a JSON file of the form {"incomes": [...], "expenses": [...]}.

    Records are loaded on construction; every add rewrites the file.
    A missing file is treated as an empty ledger.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        incomes, expenses = self._load()
        super().__init__(incomes, expenses)

    def _load(self):
        if not self.path.exists():
            logger.info(f"Ledger file {self.path} not found, starting empty")
            return [], []

        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
            incomes = [Income(**item) for item in data.get("incomes", [])]
            expenses = [Expense(**item) for item in data.get("expenses", [])]
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise LedgerStoreError(f"Could not read ledger {self.path}: {e}") from e

        logger.debug(f"Loaded {len(incomes)} incomes and {len(expenses)} expenses from {self.path}")
        return incomes, expenses

    def _save(self) -> None:
        data = {
            "incomes": [_record_to_json(i) for i in self.incomes],
            "expenses": [_record_to_json(e) for e in self.expenses],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise LedgerStoreError(f"Could not write ledger {self.path}: {e}") from e

    def add_income(self, income: Income) -> Income:
        super().add_income(income)
        self._save()
        return income

    def add_expense(self, expense: Expense) -> Expense:
        super().add_expense(expense)
        self._save()
        return expense


def _record_to_json(record) -> Dict[str, Any]:
    data = asdict(record)
    data["amount"] = float(data["amount"])
    return {k: v for k, v in data.items() if v is not None}
