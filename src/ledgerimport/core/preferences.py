"""Import Preferences Management for ledgerimport.

Provides data-driven configuration for statement parsing with sensible defaults.
Bank dialects (new header keywords, payment-rail tokens, PDF line spacing) are
added here as data rather than as parser code.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ledgerimport.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default preferences (used when the caller hasn't configured anything)
DEFAULT_PREFERENCES = {
    "$schema": "import_preferences_v1",
    "version": "1.0",

    "csv": {
        "delimiter": ","
    },

    "spreadsheet": {
        "sheet_preference": ["Transactions", "Statement", "Data", "Sheet1"],
        "header_scan_rows": 10
    },

    "pdf": {
        "row_tolerance": 2.0,
        "x_tolerance": 3.0,
        "header_scan_rows": 5,
        "min_header_cells": 3,
        "min_description_length": 2,
        "align_by_position": True
    },

    "normalizer": {
        "rail_tokens": ["UPI", "NEFT", "RTGS", "IMPS", "ATM", "POS", "CARD"],
        "placeholder": "Unknown Transaction",
        "default_category": "Uncategorized",
        "id_prefix": "import"
    },

    "duplicates": {
        "threshold": 0.7,
        "amount_tolerance": 0.01
    },

    # Extra header keywords per role, merged into the built-in table
    "column_keywords": {}
}


@dataclass
class CSVConfig:
    """Configuration for delimited text statements."""
    delimiter: str = ","


@dataclass
class SpreadsheetConfig:
    """Configuration for Excel statements."""
    sheet_preference: List[str] = field(
        default_factory=lambda: ["Transactions", "Statement", "Data", "Sheet1"]
    )
    header_scan_rows: int = 10


@dataclass
class PDFConfig:
    """Configuration for PDF table reconstruction."""
    row_tolerance: float = 2.0  # y-band (layout units) that groups fragments into one row
    x_tolerance: float = 3.0  # max gap between glyphs of one fragment
    header_scan_rows: int = 5
    min_header_cells: int = 3
    min_description_length: int = 2
    align_by_position: bool = True  # map cells to header columns by x-centre

    def __post_init__(self):
        if self.row_tolerance <= 0:
            raise ConfigError("row_tolerance must be positive", field="pdf.row_tolerance")


@dataclass
class NormalizerConfig:
    """Configuration for description cleaning and preview rows."""
    rail_tokens: List[str] = field(
        default_factory=lambda: ["UPI", "NEFT", "RTGS", "IMPS", "ATM", "POS", "CARD"]
    )
    placeholder: str = "Unknown Transaction"
    default_category: str = "Uncategorized"
    id_prefix: str = "import"


@dataclass
class DuplicateConfig:
    """Configuration for duplicate detection against the ledger."""
    threshold: float = 0.7
    amount_tolerance: float = 0.01


class ImportPreferences:
    """
    Preferences for the statement import pipeline.

    Loads from a JSON file with fallback to defaults.

    Usage:
        prefs = ImportPreferences.load(Path("config/import.json"))
        tolerance = prefs.pdf.row_tolerance
        keywords = prefs.column_keywords.get("credit", [])
    """

    def __init__(self, data: Dict[str, Any]):
        """Initialize from preference dictionary."""
        self._raw = data

        csv_cfg = data.get("csv", {})
        self.csv = CSVConfig(delimiter=csv_cfg.get("delimiter", ","))

        sheet = data.get("spreadsheet", {})
        self.spreadsheet = SpreadsheetConfig(
            sheet_preference=list(sheet.get("sheet_preference", SpreadsheetConfig().sheet_preference)),
            header_scan_rows=int(sheet.get("header_scan_rows", 10))
        )

        pdf = data.get("pdf", {})
        self.pdf = PDFConfig(
            row_tolerance=float(pdf.get("row_tolerance", 2.0)),
            x_tolerance=float(pdf.get("x_tolerance", 3.0)),
            header_scan_rows=int(pdf.get("header_scan_rows", 5)),
            min_header_cells=int(pdf.get("min_header_cells", 3)),
            min_description_length=int(pdf.get("min_description_length", 2)),
            align_by_position=bool(pdf.get("align_by_position", True))
        )

        norm = data.get("normalizer", {})
        self.normalizer = NormalizerConfig(
            rail_tokens=list(norm.get("rail_tokens", NormalizerConfig().rail_tokens)),
            placeholder=norm.get("placeholder", "Unknown Transaction"),
            default_category=norm.get("default_category", "Uncategorized"),
            id_prefix=norm.get("id_prefix", "import")
        )

        dup = data.get("duplicates", {})
        self.duplicates = DuplicateConfig(
            threshold=float(dup.get("threshold", 0.7)),
            amount_tolerance=float(dup.get("amount_tolerance", 0.01))
        )

        self.column_keywords: Dict[str, List[str]] = {
            role: [str(k).lower() for k in keywords]
            for role, keywords in data.get("column_keywords", {}).items()
        }

    @classmethod
    def default(cls) -> "ImportPreferences":
        """Preferences with every value at its default."""
        return cls(copy.deepcopy(DEFAULT_PREFERENCES))

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "ImportPreferences":
        """
        Load preferences with fallback to defaults.

        Args:
            config_path: JSON file with overrides - optional

        Returns:
            ImportPreferences instance
        """
        data = copy.deepcopy(DEFAULT_PREFERENCES)

        if config_path:
            config_path = Path(config_path)
            if config_path.exists():
                try:
                    with open(config_path, encoding='utf-8') as f:
                        user_data = json.load(f)
                    data = cls._deep_merge(data, user_data)
                    logger.debug(f"Loaded import preferences from {config_path}")
                except (OSError, ValueError) as e:
                    logger.warning(f"Failed to load import preferences: {e}")
            else:
                logger.warning(f"Preferences file not found, using defaults: {config_path}")

        return cls(data)

    @staticmethod
    def _deep_merge(base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ImportPreferences._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def save(self, config_path: Path) -> None:
        """Save current preferences to a JSON file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(self._raw, f, indent=2)

        logger.info(f"Saved import preferences to {config_path}")
