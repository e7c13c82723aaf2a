"""
Core module - Foundation components for ledgerimport.

Provides:
- Exceptions: LedgerImportError hierarchy
- ImportPreferences: JSON-backed configuration with defaults
- Ledger records (Income, Expense) and the LedgerStore interface
"""

from ledgerimport.core.exceptions import (
    LedgerImportError,
    StatementParseError,
    PasswordRequiredError,
    IncorrectPasswordError,
    CorruptFileError,
    UnsupportedFormatError,
    LedgerStoreError,
    ConfigError,
)
from ledgerimport.core.preferences import ImportPreferences
from ledgerimport.core.ledger import (
    Income,
    Expense,
    LedgerStore,
    InMemoryLedgerStore,
    JsonLedgerStore,
)

__all__ = [
    "LedgerImportError",
    "StatementParseError",
    "PasswordRequiredError",
    "IncorrectPasswordError",
    "CorruptFileError",
    "UnsupportedFormatError",
    "LedgerStoreError",
    "ConfigError",
    "ImportPreferences",
    "Income",
    "Expense",
    "LedgerStore",
    "InMemoryLedgerStore",
    "JsonLedgerStore",
]
