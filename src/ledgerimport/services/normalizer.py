"""
Transaction normalizer.

Turns parser output into ImportPreviewRows: cleans descriptions, fills the
default category and hands out ids that are only meaningful within one
import session.
"""

import logging
import re
from dataclasses import asdict
from typing import List, Optional, Pattern, Sequence, Tuple

from ledgerimport.core.preferences import NormalizerConfig
from ledgerimport.parsers.bank.models import ImportPreviewRow, ParsedTransaction

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')


def _rail_patterns(tokens: Sequence[str]) -> Tuple[Pattern, Pattern]:
    alternation = "|".join(re.escape(t) for t in tokens)
    prefix = re.compile(rf'^(?:{alternation})\b[\s/:\-]*', re.IGNORECASE)
    suffix = re.compile(rf'[\s/:\-]*\b(?:{alternation})$', re.IGNORECASE)
    return prefix, suffix


def normalize_description(description: Optional[str], config: NormalizerConfig = None) -> str:
    """
    Clean a statement description.

    Collapses whitespace and strips one payment-rail token (UPI, NEFT, ...)
    from each end. Returns the placeholder when nothing is left.
    """
    config = config or NormalizerConfig()
    if not description:
        return config.placeholder

    cleaned = _WHITESPACE.sub(' ', description).strip()
    if config.rail_tokens:
        prefix, suffix = _rail_patterns(config.rail_tokens)
        cleaned = prefix.sub('', cleaned)
        cleaned = suffix.sub('', cleaned).strip()

    return cleaned or config.placeholder


def normalize_transactions(
    transactions: Sequence[ParsedTransaction],
    config: NormalizerConfig = None,
) -> List[ImportPreviewRow]:
    """
    Normalize parsed transactions into preview rows.

    Args:
        transactions: Raw parsed transactions
        config: Normalizer settings; defaults when omitted

    Returns:
        Preview rows, all included, with ids ``<prefix>-1``, ``<prefix>-2``, ...
    """
    config = config or NormalizerConfig()
    rows = []

    for index, transaction in enumerate(transactions, start=1):
        data = asdict(transaction)
        data.update(
            id=f"{config.id_prefix}-{index}",
            description=normalize_description(transaction.description, config),
            category=transaction.category or config.default_category,
            include=True,
        )
        row = ImportPreviewRow(**data)
        if row.amount < 0:
            row.amount = abs(row.amount)
        rows.append(row)

    logger.debug(f"Normalized {len(rows)} transactions")
    return rows
