"""
Statement import pipeline.

file -> dispatcher -> parser -> normalizer -> validator -> duplicate detector
-> preview rows for review. Nothing is written to the ledger here; commit is
a separate, caller-driven step (see ledgerimport.services.commit).

Usage:
    from ledgerimport.services.pipeline import ImportPipeline

    pipeline = ImportPipeline(store)
    preview = pipeline.preview_file(Path("statement.pdf"))
    if preview.password_required:
        preview = pipeline.preview_file(Path("statement.pdf"), password=ask_user())
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ledgerimport.core.ledger import InMemoryLedgerStore, LedgerStore
from ledgerimport.core.preferences import ImportPreferences
from ledgerimport.parsers.bank.dispatcher import StatementDispatcher
from ledgerimport.parsers.bank.models import ImportPreviewRow, ParseResult
from ledgerimport.services.duplicates import detect_statement_duplicates
from ledgerimport.services.normalizer import normalize_transactions
from ledgerimport.services.validator import validate_rows

logger = logging.getLogger(__name__)


@dataclass
class ImportPreview:
    """Everything the review step needs for one uploaded statement."""

    parse_result: ParseResult
    rows: List[ImportPreviewRow] = field(default_factory=list)
    defects: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.parse_result.success and bool(self.rows)

    @property
    def password_required(self) -> bool:
        return self.parse_result.password_required

    @property
    def errors(self) -> List[str]:
        return self.parse_result.errors

    @property
    def warnings(self) -> List[str]:
        return self.parse_result.warnings

    @property
    def duplicate_count(self) -> int:
        return sum(1 for row in self.rows if row.is_duplicate)

    @property
    def selected_count(self) -> int:
        return sum(1 for row in self.rows if row.include)


class ImportPipeline:
    """Turns a statement file into reviewable preview rows."""

    def __init__(self, store: LedgerStore = None, preferences: ImportPreferences = None):
        """
        Initialize pipeline.

        Args:
            store: Ledger to check for duplicates; empty ledger when omitted
            preferences: Import preferences; defaults when omitted
        """
        self.store = store or InMemoryLedgerStore()
        self.preferences = preferences or ImportPreferences.default()
        self.dispatcher = StatementDispatcher(self.preferences)

    def preview(self, data: bytes, filename: str = "", password: Optional[str] = None) -> ImportPreview:
        """
        Parse statement bytes and build preview rows.

        Args:
            data: File bytes
            filename: Original file name
            password: PDF password, used for this call only

        Returns:
            ImportPreview; rows are empty when parsing failed
        """
        result = self.dispatcher.parse(data, filename, password=password)
        return self._build_preview(result)

    async def preview_async(
        self, data: bytes, filename: str = "", password: Optional[str] = None
    ) -> ImportPreview:
        """Async variant of preview."""
        result = await self.dispatcher.parse_async(data, filename, password=password)
        return self._build_preview(result)

    def preview_file(self, path: Path, password: Optional[str] = None) -> ImportPreview:
        """Read a statement from disk and preview it."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            result = ParseResult(success=False, source_file=str(path))
            return ImportPreview(parse_result=result.fail(f"Failed to read file: {e.strerror or e}"))

        return self.preview(data, path.name, password=password)

    def _build_preview(self, result: ParseResult) -> ImportPreview:
        # A failed parse is non-authoritative: nothing from it goes to review
        if not result.success or not result.transactions:
            if result.success:
                result.fail("No valid transactions found")
            return ImportPreview(parse_result=result)

        rows = normalize_transactions(result.transactions, self.preferences.normalizer)
        rows = detect_statement_duplicates(
            rows,
            self.store.list_incomes(),
            self.store.list_expenses(),
            threshold=self.preferences.duplicates.threshold,
            amount_tolerance=self.preferences.duplicates.amount_tolerance,
        )
        defects = validate_rows(rows)

        logger.info(
            f"Preview ready: {len(rows)} rows, "
            f"{sum(1 for r in rows if r.is_duplicate)} duplicates, {len(defects)} with defects"
        )
        return ImportPreview(parse_result=result, rows=rows, defects=defects)
