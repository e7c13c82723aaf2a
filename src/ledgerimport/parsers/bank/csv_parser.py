"""
Delimited text (CSV) statement parser.

The header is always the first non-blank line. Cells are split on the
configured delimiter without quote awareness: a delimiter inside a quoted
field misaligns that row, which then fails the date or amount check and is
reported as a row error rather than imported wrongly.
"""

import logging
from typing import List, Sequence

from ledgerimport.parsers.bank.base import StatementParser
from ledgerimport.parsers.bank.models import ParseResult

logger = logging.getLogger(__name__)


class CSVStatementParser(StatementParser):
    """Parser for CSV bank statements."""

    FORMAT_NAME = "CSV"

    @property
    def delimiter(self) -> str:
        return self.preferences.csv.delimiter

    def parse_bytes(self, data: bytes, source_file: str = "") -> ParseResult:
        """Decode raw bytes and parse them."""
        return self.parse_text(decode_text(data), source_file)

    def parse_text(self, text: str, source_file: str = "") -> ParseResult:
        """
        Parse CSV statement content.

        Args:
            text: File content
            source_file: Name used in the result for traceability

        Returns:
            ParseResult with transactions and row-level errors
        """
        result = ParseResult(success=False, source_file=source_file)

        lines = [line for line in text.splitlines() if line.strip()]
        if len(lines) < 2:
            return result.fail("CSV file appears to be empty or has no header")

        header = [cell.lower() for cell in self._split(lines[0])]
        columns = self.resolve_columns(header)
        if not columns.has_date:
            return result.fail("Could not find date column in CSV")

        rows = [self._split(line) for line in lines[1:]]
        self._parse_grid_rows(rows, columns, result, first_row_number=2)
        return self._finish(result)

    def _split(self, line: str) -> List[str]:
        return [_strip_quotes(cell.strip()) for cell in line.split(self.delimiter)]

    def _row_is_blank(self, row: Sequence) -> bool:
        return len(row) < 2

    def _clean_description(self, text: str) -> str:
        return text.replace('"', '').strip()


def _strip_quotes(cell: str) -> str:
    if len(cell) >= 2 and cell[0] == cell[-1] and cell[0] in ('"', "'"):
        return cell[1:-1].strip()
    return cell


def decode_text(data: bytes) -> str:
    """Decode statement bytes; UTF-8 (with or without BOM), else Latin-1."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("Statement is not valid UTF-8, decoding as Latin-1")
        return data.decode("latin-1")
