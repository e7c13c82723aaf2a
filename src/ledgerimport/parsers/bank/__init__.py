"""
Bank statement parsers for ledgerimport.

Supports three source formats:
- Delimited text (CSV)
- Excel workbooks (.xlsx, .xls)
- Text-based PDF statements, including password-protected ones
"""

from ledgerimport.parsers.bank.models import (
    ParsedTransaction,
    ImportPreviewRow,
    ParseResult,
    TransactionType,
)
from ledgerimport.parsers.bank.utils import (
    parse_date,
    parse_amount,
    parse_signed_amount,
    determine_type,
)
from ledgerimport.parsers.bank.base import StatementParser
from ledgerimport.parsers.bank.csv_parser import CSVStatementParser
from ledgerimport.parsers.bank.excel import ExcelStatementParser
from ledgerimport.parsers.bank.pdf import PDFStatementParser, ProtectionStatus, probe_protection
from ledgerimport.parsers.bank.dispatcher import StatementDispatcher, StatementFormat, detect_format

__all__ = [
    "ParsedTransaction",
    "ImportPreviewRow",
    "ParseResult",
    "TransactionType",
    "parse_date",
    "parse_amount",
    "parse_signed_amount",
    "determine_type",
    "StatementParser",
    "CSVStatementParser",
    "ExcelStatementParser",
    "PDFStatementParser",
    "ProtectionStatus",
    "probe_protection",
    "StatementDispatcher",
    "StatementFormat",
    "detect_format",
]
