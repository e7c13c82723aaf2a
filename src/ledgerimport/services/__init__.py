"""
Services module - import pipeline stages after parsing.

- normalizer: preview rows with cleaned descriptions
- validator: per-row defects
- duplicates: probable re-imports against the ledger
- pipeline: file -> preview orchestration (sync and async)
- commit: write reviewed rows to the ledger
"""

from ledgerimport.services.normalizer import normalize_description, normalize_transactions
from ledgerimport.services.validator import validate_transaction, validate_rows
from ledgerimport.services.duplicates import detect_statement_duplicates, string_similarity
from ledgerimport.services.pipeline import ImportPipeline, ImportPreview
from ledgerimport.services.commit import ImportResult, commit_rows

__all__ = [
    "normalize_description",
    "normalize_transactions",
    "validate_transaction",
    "validate_rows",
    "detect_statement_duplicates",
    "string_similarity",
    "ImportPipeline",
    "ImportPreview",
    "ImportResult",
    "commit_rows",
]
