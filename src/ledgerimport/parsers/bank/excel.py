"""
Excel statement parser.

Parses .xlsx/.xls statements downloaded from net banking. Works on the raw
cell grid (no pandas header inference) so that the same column-role rules
as the CSV parser apply, and both formats produce the same ParseResult for
equivalent content.
"""

import io
import logging
import math
import numbers
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ledgerimport.core.exceptions import CorruptFileError
from ledgerimport.parsers.bank.base import StatementParser, cell_at
from ledgerimport.parsers.bank.columns import EXTENDED_KEYWORDS, ColumnMap
from ledgerimport.parsers.bank.models import ParseResult
from ledgerimport.parsers.bank.utils import clean_cell, excel_serial_to_date, parse_date

logger = logging.getLogger(__name__)


class ExcelStatementParser(StatementParser):
    """Parser for Excel bank statements."""

    FORMAT_NAME = "Excel file"
    EXTRA_KEYWORDS = EXTENDED_KEYWORDS
    INVALID_DATE_MESSAGE = "Invalid date"

    def parse_bytes(self, data: bytes, source_file: str = "") -> ParseResult:
        """
        Parse Excel statement content.

        Args:
            data: Workbook bytes
            source_file: Name used in the result for traceability

        Returns:
            ParseResult with transactions and row-level errors
        """
        result = ParseResult(success=False, source_file=source_file)

        try:
            sheets = read_workbook(data)
        except CorruptFileError as e:
            return result.fail(e.message)

        sheet_name, grid = self._select_sheet(sheets)
        if grid is None:
            return result.fail("No data found in Excel file")

        logger.debug(f"Using sheet '{sheet_name}' with {len(grid)} rows")
        return self.parse_grid(grid, result)

    def parse_grid(self, grid: List[List], result: ParseResult = None) -> ParseResult:
        """Parse an already-loaded cell grid (None for blank cells)."""
        if result is None:
            result = ParseResult(success=False)

        if len(grid) < 2:
            return result.fail("Excel file appears to be empty or has no header")

        header_index = self._find_header_row(grid)
        columns = self.resolve_columns(grid[header_index])
        if not columns.has_date:
            return result.fail("Could not find date column in Excel file")

        if header_index:
            result.add_warning(f"Header found on row {header_index + 1}; rows above it were ignored")

        self._parse_grid_rows(
            grid[header_index + 1:], columns, result, first_row_number=header_index + 2
        )
        return self._finish(result)

    def _select_sheet(self, sheets: Dict[str, List[List]]) -> Tuple[Optional[str], Optional[List[List]]]:
        """Pick the sheet most likely to hold transactions."""
        if not sheets:
            return None, None

        for name in self.preferences.spreadsheet.sheet_preference:
            if name in sheets:
                return name, sheets[name]

        first = next(iter(sheets))
        return first, sheets[first]

    def _find_header_row(self, grid: List[List]) -> int:
        """
        Find the row containing column headers.

        The first row is the header unless it has no date column, in which case
        the next few rows are scanned (exports often start with account details).
        """
        if self.resolve_columns(grid[0]).has_date:
            return 0

        limit = min(self.preferences.spreadsheet.header_scan_rows, len(grid) - 1)
        for i in range(1, limit):
            if self.resolve_columns(grid[i]).has_date:
                return i

        return 0

    def _row_is_blank(self, row: Sequence) -> bool:
        return sum(1 for cell in row if clean_cell(cell)) < 2

    def _reference(self, row: Sequence, columns: ColumnMap) -> Optional[str]:
        if columns.reference is None:
            return None
        return reference_text(cell_at(row, columns.reference))

    def _coerce_date(self, value) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (datetime, date)):
            return parse_date(value)
        if isinstance(value, numbers.Number):
            return excel_serial_to_date(value)
        return parse_date(clean_cell(value))


def reference_text(value) -> str:
    """
    Reference cell as text.

    pandas stores a numeric column with blanks as float, so a cheque or
    transaction number 123456 arrives as 123456.0; integral floats are
    written back without the fraction.
    """
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return clean_cell(value)


def read_workbook(data: bytes) -> Dict[str, List[List]]:
    """
    Read every sheet of a workbook into a list-of-rows grid.

    Blank cells become None; dates stay datetime objects.

    Raises:
        CorruptFileError: if the workbook cannot be read
    """
    try:
        frames = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None)
    except Exception as e:
        raise CorruptFileError(f"Failed to read Excel file: {e}") from e

    sheets = {}
    for name, df in frames.items():
        df = df.astype(object).where(df.notna(), None)
        sheets[str(name)] = df.values.tolist()
    return sheets
