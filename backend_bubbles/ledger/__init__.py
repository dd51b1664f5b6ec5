"""
Solana ledger boundary.

JSON-RPC client, payload parser, and address validator consumed by the
analysis engine. Nothing here aggregates or scores; it only fetches and
normalizes transaction data.
"""

from backend_bubbles.ledger.models import SignatureInfo, TokenBalance, TransactionRecord
from backend_bubbles.ledger.parser import parse_record

__all__ = [
    "SignatureInfo",
    "TokenBalance",
    "TransactionRecord",
    "parse_record",
]
