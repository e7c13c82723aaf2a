"""
Statement Format Dispatcher - picks and drives the parser for an uploaded file.

Uses a layered detection approach:
1. Content signature (PDF header, zip container, legacy OLE2 workbook)
2. Filename extension
3. Unknown -> file-level failure

For PDFs without a password the document is first probed for protection, so
that an encrypted statement comes back as "password required" (prompt the
user) instead of a generic parse failure.

Usage:
    from ledgerimport.parsers.bank.dispatcher import StatementDispatcher

    dispatcher = StatementDispatcher()
    result = dispatcher.parse(data, "statement.pdf")
    if result.password_required:
        result = dispatcher.parse(data, "statement.pdf", password=ask_user())
"""

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from ledgerimport.core.exceptions import PasswordRequiredError, UnsupportedFormatError
from ledgerimport.core.preferences import ImportPreferences
from ledgerimport.parsers.bank.csv_parser import CSVStatementParser
from ledgerimport.parsers.bank.excel import ExcelStatementParser
from ledgerimport.parsers.bank.models import ParseResult
from ledgerimport.parsers.bank.pdf import PDFStatementParser, ProtectionStatus, probe_protection

logger = logging.getLogger(__name__)


class StatementFormat(Enum):
    """Kind of statement file."""
    CSV = "csv"
    SPREADSHEET = "spreadsheet"
    PDF = "pdf"
    UNKNOWN = "unknown"


# Content signatures, checked before the extension
SIGNATURES = [
    (b"%PDF", StatementFormat.PDF),
    (b"PK\x03\x04", StatementFormat.SPREADSHEET),  # xlsx/xlsm (zip container)
    (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1", StatementFormat.SPREADSHEET),  # legacy xls
]

EXTENSIONS = {
    ".csv": StatementFormat.CSV,
    ".txt": StatementFormat.CSV,
    ".xlsx": StatementFormat.SPREADSHEET,
    ".xlsm": StatementFormat.SPREADSHEET,
    ".xls": StatementFormat.SPREADSHEET,
    ".pdf": StatementFormat.PDF,
}

# PDFs may carry a little junk before the header
PDF_HEADER_WINDOW = 1024


def detect_format(data: bytes, filename: str = "") -> StatementFormat:
    """
    Detect the statement format from content, then from the filename.

    Args:
        data: File bytes
        filename: Original file name (only the extension is used)

    Returns:
        StatementFormat
    """
    head = data[:PDF_HEADER_WINDOW]
    for signature, fmt in SIGNATURES:
        if head.startswith(signature):
            return fmt
    if b"%PDF-" in head:
        return StatementFormat.PDF

    suffix = Path(filename).suffix.lower() if filename else ""
    return EXTENSIONS.get(suffix, StatementFormat.UNKNOWN)


def password_required_result(source_file: str = "") -> ParseResult:
    """ParseResult signalling that the caller must collect a password."""
    result = ParseResult(success=False, source_file=source_file, password_required=True)
    return result.fail(PasswordRequiredError().message)


class StatementDispatcher:
    """
    Routes statement bytes to the CSV, Excel or PDF parser.

    Holds no per-import state: each call is independent, and a password
    passed to parse() is used for that call only.
    """

    def __init__(self, preferences: ImportPreferences = None):
        self.preferences = preferences or ImportPreferences.default()
        self.csv_parser = CSVStatementParser(self.preferences)
        self.excel_parser = ExcelStatementParser(self.preferences)
        self.pdf_parser = PDFStatementParser(self.preferences)

    def probe(self, data: bytes, filename: str = "") -> Optional[ProtectionStatus]:
        """Protection status for PDFs; None for other formats."""
        if detect_format(data, filename) != StatementFormat.PDF:
            return None
        return probe_protection(data)

    def parse(self, data: bytes, filename: str = "", password: Optional[str] = None) -> ParseResult:
        """
        Parse a statement file.

        Args:
            data: File bytes
            filename: Original file name
            password: PDF password, only after a "password required" result

        Returns:
            ParseResult; ``password_required`` is set when a PDF needs a
            (different) password
        """
        fmt = detect_format(data, filename)
        logger.info(f"Parsing {filename or 'statement'} as {fmt.value}")

        if fmt == StatementFormat.PDF:
            early = self._pdf_gate(data, filename, password)
            if early is not None:
                return early
            return self.pdf_parser.parse_bytes(data, password=password, source_file=filename)

        return self._parse_tabular(fmt, data, filename)

    async def parse_async(self, data: bytes, filename: str = "", password: Optional[str] = None) -> ParseResult:
        """Async variant of parse; PDF pages are awaited in page order."""
        fmt = detect_format(data, filename)
        logger.info(f"Parsing {filename or 'statement'} as {fmt.value}")

        if fmt == StatementFormat.PDF:
            early = await asyncio.to_thread(self._pdf_gate, data, filename, password)
            if early is not None:
                return early
            return await self.pdf_parser.parse_bytes_async(data, password=password, source_file=filename)

        return self._parse_tabular(fmt, data, filename)

    def _pdf_gate(self, data: bytes, filename: str, password: Optional[str]) -> Optional[ParseResult]:
        """Probe an unlocked-looking PDF; a result here ends the parse early."""
        if password:
            return None

        status = probe_protection(data)
        if status == ProtectionStatus.PASSWORD_REQUIRED:
            logger.info(f"{filename or 'PDF'} is password-protected")
            return password_required_result(filename)
        # Corrupt documents fall through so the parser reports the load error
        return None

    def _parse_tabular(self, fmt: StatementFormat, data: bytes, filename: str) -> ParseResult:
        if fmt == StatementFormat.CSV:
            parser, kind = self.csv_parser, "CSV"
        elif fmt == StatementFormat.SPREADSHEET:
            parser, kind = self.excel_parser, "Excel file"
        else:
            result = ParseResult(success=False, source_file=filename)
            return result.fail(UnsupportedFormatError(filename or "unknown").message)

        try:
            return parser.parse_bytes(data, source_file=filename)
        except Exception as e:
            logger.exception(f"Unexpected error parsing {kind}")
            result = ParseResult(success=False, source_file=filename)
            return result.fail(f"Failed to parse {kind}: {e}")
