"""
ledgerimport - bank statement ingestion for personal finance ledgers.

Turns an uploaded CSV, Excel or PDF bank statement into reviewable
income/expense preview rows, flagging probable re-imports against the
existing ledger.
"""

__version__ = "0.1.0"
