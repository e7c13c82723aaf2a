"""
PDF statement parser.

A PDF carries positioned glyphs, not rows and columns. This module rebuilds
the statement table from word positions:

1. Open the document (optionally with a password) with pdfplumber.
2. Collect every text fragment per page with its x span and y position
   (PDF space, origin bottom-left).
3. Bucket fragments into rows by rounding y to a tolerance band, order rows
   top to bottom and fragments left to right.
4. Find the header row among the first few rows and resolve column roles.
5. Turn every later row into a transaction, dropping rows without a date,
   a description or an amount.

Dropped rows are not reported as row errors (reconstructed text is noisy:
page headers, footers, running totals). Their count is reported as a single
warning instead.

Passwords are only handed to the PDF loader. They are never stored, logged
or included in any message.
"""

import asyncio
import io
import logging
import math
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence

import pdfplumber
from pdfminer.pdfdocument import PDFEncryptionError, PDFPasswordIncorrect

from ledgerimport.core.exceptions import (
    CorruptFileError,
    IncorrectPasswordError,
    PasswordRequiredError,
    StatementParseError,
)
from ledgerimport.parsers.bank.base import StatementParser, build_transaction, cell_at, split_debit_credit
from ledgerimport.parsers.bank.columns import EXTENDED_KEYWORDS, ColumnMap
from ledgerimport.parsers.bank.models import ParseResult
from ledgerimport.parsers.bank.utils import parse_date

logger = logging.getLogger(__name__)

# Words that mark a row as the table header
HEADER_HINTS = ("date", "description", "amount", "debit", "credit")

PASSWORD_SIGNALS = ("password", "encrypt")


class ProtectionStatus(Enum):
    """Outcome of opening a PDF without a password."""
    UNPROTECTED = "unprotected"
    PASSWORD_REQUIRED = "password_required"
    CORRUPT = "corrupt"


@dataclass
class TextFragment:
    """A run of text at a position on the page."""
    text: str
    x0: float
    x1: float
    y: float  # distance from the bottom of the page

    @property
    def center(self) -> float:
        return (self.x0 + self.x1) / 2.0


@dataclass
class TextRow:
    """Fragments sharing one y band, ordered left to right."""
    y: float
    fragments: List[TextFragment] = field(default_factory=list)

    @property
    def cells(self) -> List[str]:
        return [f.text for f in self.fragments]

    def __len__(self) -> int:
        return len(self.fragments)


# ----------------------------------------------------------------------
# Document loading and protection detection
# ----------------------------------------------------------------------

def is_password_error(exc: BaseException) -> bool:
    """
    True when an exception (or anything it wraps) signals encryption.

    pdfplumber wraps pdfminer errors, so the cause chain and exception
    arguments are searched as well as the exception itself.
    """
    stack = [exc]
    seen = set()

    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))

        if isinstance(current, (PDFPasswordIncorrect, PDFEncryptionError)):
            return True

        name = type(current).__name__.lower()
        message = str(current).lower()
        if "password" in name or any(signal in message for signal in PASSWORD_SIGNALS):
            return True

        stack.append(current.__cause__)
        stack.append(current.__context__)
        stack.extend(arg for arg in current.args if isinstance(arg, BaseException))

    return False


def load_pdf(data: bytes, password: Optional[str] = None) -> "pdfplumber.PDF":
    """
    Load PDF bytes with pdfplumber. The caller closes the document.

    Raises:
        PasswordRequiredError: document is encrypted and no password was given
        IncorrectPasswordError: the given password does not open the document
        CorruptFileError: any other failure to load the document
    """
    try:
        return pdfplumber.open(io.BytesIO(data), password=password or "")
    except Exception as e:
        if is_password_error(e):
            if password:
                raise IncorrectPasswordError() from None
            raise PasswordRequiredError() from None
        raise CorruptFileError(f"Failed to load PDF document: {e}") from e


@contextmanager
def open_pdf(data: bytes, password: Optional[str] = None) -> Iterator["pdfplumber.PDF"]:
    """Context-managed load_pdf."""
    pdf = load_pdf(data, password)
    try:
        yield pdf
    finally:
        pdf.close()


def probe_protection(data: bytes) -> ProtectionStatus:
    """
    Check whether a PDF needs a password, without trying any.

    Returns:
        ProtectionStatus for the document
    """
    try:
        with open_pdf(data):
            return ProtectionStatus.UNPROTECTED
    except PasswordRequiredError:
        return ProtectionStatus.PASSWORD_REQUIRED
    except CorruptFileError as e:
        logger.debug(f"PDF probe failed: {e.message}")
        return ProtectionStatus.CORRUPT


# ----------------------------------------------------------------------
# Row reconstruction
# ----------------------------------------------------------------------

def page_fragments(page, x_tolerance: float = 3.0) -> List[TextFragment]:
    """Positioned text fragments of one pdfplumber page."""
    words = page.extract_words(keep_blank_chars=True, x_tolerance=x_tolerance)
    fragments = []
    for word in words:
        text = word["text"].strip()
        if not text:
            continue
        fragments.append(TextFragment(
            text=text,
            x0=float(word["x0"]),
            x1=float(word["x1"]),
            y=float(page.height) - float(word["bottom"]),
        ))
    return fragments


def group_rows(fragments: Sequence[TextFragment], tolerance: float = 2.0) -> List[TextRow]:
    """
    Group fragments into rows by rounding y to the tolerance band.

    Rows come out top to bottom (descending y), fragments left to right.
    """
    buckets: Dict[float, List[TextFragment]] = {}
    for fragment in fragments:
        if not fragment.text:
            continue
        key = math.floor(fragment.y / tolerance + 0.5) * tolerance
        buckets.setdefault(key, []).append(fragment)

    return [
        TextRow(y=key, fragments=sorted(buckets[key], key=lambda f: f.x0))
        for key in sorted(buckets, reverse=True)
    ]


def find_header_row(rows: Sequence[TextRow], scan_rows: int = 5, min_cells: int = 3) -> int:
    """
    Index of the header row.

    The first of the leading rows with enough cells that mentions a column
    name; the first row when none does.
    """
    for i, row in enumerate(rows[:scan_rows]):
        if len(row) < min_cells:
            continue
        text = " ".join(row.cells).lower()
        if any(hint in text for hint in HEADER_HINTS):
            return i
    return 0


def align_to_header(row: TextRow, header: TextRow) -> List[str]:
    """
    Place a row's fragments under the nearest header column (by x-centre).

    Empty columns come back as ''. Fragments landing in the same column are
    joined with a space.
    """
    centers = [f.center for f in header.fragments]
    columns: List[List[str]] = [[] for _ in centers]
    for fragment in row.fragments:
        nearest = min(range(len(centers)), key=lambda i: abs(centers[i] - fragment.center))
        columns[nearest].append(fragment.text)
    return [" ".join(parts) for parts in columns]


class PDFStatementParser(StatementParser):
    """Parser for text-based PDF bank statements."""

    FORMAT_NAME = "PDF"
    EXTRA_KEYWORDS = EXTENDED_KEYWORDS

    @property
    def config(self):
        return self.preferences.pdf

    def parse_bytes(self, data: bytes, password: Optional[str] = None, source_file: str = "") -> ParseResult:
        """
        Parse PDF statement content.

        Args:
            data: PDF bytes
            password: Optional password for encrypted PDFs (used for this call only)
            source_file: Name used in the result for traceability

        Returns:
            ParseResult with transactions
        """
        result = ParseResult(success=False, source_file=source_file)

        try:
            with open_pdf(data, password) as pdf:
                rows: List[TextRow] = []
                for page in pdf.pages:
                    rows.extend(self._page_rows(page))
        except StatementParseError as e:
            return self._load_failure(result, e)
        except Exception as e:
            logger.warning(f"PDF text extraction failed: {e}")
            return result.fail(f"Failed to parse PDF: {e}")

        return self.parse_rows(rows, result)

    async def parse_bytes_async(
        self, data: bytes, password: Optional[str] = None, source_file: str = ""
    ) -> ParseResult:
        """
        Async variant of parse_bytes.

        The document is loaded and its pages extracted off the event loop,
        one page at a time in page order. Row order encodes the statement's
        layout, so pages are never extracted concurrently.
        """
        result = ParseResult(success=False, source_file=source_file)

        try:
            pdf = await asyncio.to_thread(load_pdf, data, password)
            try:
                pages = await asyncio.to_thread(lambda: pdf.pages)
                rows: List[TextRow] = []
                for page in pages:
                    rows.extend(await asyncio.to_thread(self._page_rows, page))
            finally:
                pdf.close()
        except StatementParseError as e:
            return self._load_failure(result, e)
        except Exception as e:
            logger.warning(f"PDF text extraction failed: {e}")
            return result.fail(f"Failed to parse PDF: {e}")

        return self.parse_rows(rows, result)

    def _page_rows(self, page) -> List[TextRow]:
        fragments = page_fragments(page, self.config.x_tolerance)
        rows = group_rows(fragments, self.config.row_tolerance)
        logger.debug(f"Page {page.page_number}: {len(fragments)} fragments in {len(rows)} rows")
        return rows

    def _load_failure(self, result: ParseResult, error: StatementParseError) -> ParseResult:
        if isinstance(error, PasswordRequiredError):
            result.password_required = True
            logger.info("PDF requires a password")
        return result.fail(error.message)

    def parse_rows(self, rows: List[TextRow], result: ParseResult = None) -> ParseResult:
        """
        Build transactions from reconstructed text rows.

        Args:
            rows: Rows of every page in reading order
            result: ParseResult to fill; a fresh one when omitted
        """
        if result is None:
            result = ParseResult(success=False)

        if len(rows) < 2:
            return result.fail("PDF appears to be empty or has no readable text")

        header_index = find_header_row(rows, self.config.header_scan_rows, self.config.min_header_cells)
        header = rows[header_index]
        if len(header) < 2:
            return result.fail("Could not find header row in PDF")

        columns = self.resolve_columns(header.cells)
        if not columns.has_date:
            return result.fail("Could not find date column in PDF")

        skipped: Counter = Counter()
        for i in range(header_index + 1, len(rows)):
            reason = self._extract_row(rows[i], header, columns, i + 1, result)
            if reason:
                skipped[reason] += 1

        if skipped:
            total = sum(skipped.values())
            detail = ", ".join(f"{count} {reason}" for reason, count in sorted(skipped.items()))
            result.add_warning(f"Skipped {total} PDF rows ({detail})")
            logger.debug(f"Skipped PDF rows: {dict(skipped)}")

        if not result.transactions:
            return result.fail("No valid transactions found in PDF. The PDF may not be in a structured format.")

        result.success = True
        logger.info(f"Parsed {result.transaction_count} transactions from PDF")
        return result

    def _extract_row(
        self,
        row: TextRow,
        header: TextRow,
        columns: ColumnMap,
        row_number: int,
        result: ParseResult,
    ) -> Optional[str]:
        """Append the row's transaction to result; return a skip reason otherwise."""
        if self._row_is_blank(row.fragments):
            return None

        cells = align_to_header(row, header) if self.config.align_by_position else row.cells

        txn_date = parse_date(cell_at(cells, columns.date) or cell_at(cells, 0) or "")
        if not txn_date:
            return "without date"

        description_index = columns.description if columns.description is not None else 1
        description = (cell_at(cells, description_index) or "").strip()
        if len(description) < self.config.min_description_length:
            return "without description"

        debit, credit = split_debit_credit(cells, columns)
        reference = None
        if columns.reference is not None:
            reference = (cell_at(cells, columns.reference) or "").strip() or None

        transaction = build_transaction(
            date=txn_date,
            description=description,
            debit=debit,
            credit=credit,
            reference=reference,
            row_index=row_number,
        )
        if transaction is None:
            return "with zero amount"

        result.transactions.append(transaction)
        return None

    def _row_is_blank(self, row: Sequence) -> bool:
        return len(row) < 2
