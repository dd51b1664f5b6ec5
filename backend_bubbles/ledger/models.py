"""
Data models for ledger RPC output.

Read-only views over getSignaturesForAddress and getTransaction results,
normalized so the analysis engine never touches raw RPC dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    memo: str | None = None
    confirmation_status: str | None = None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        return cls(
            signature=item["signature"],
            slot=int(item.get("slot") or 0),
            err=item.get("err"),
            block_time=item.get("blockTime"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class TokenBalance:
    """One entry of meta.preTokenBalances / meta.postTokenBalances."""

    owner: str
    mint: str
    amount: int
    """Raw integer amount (uiTokenAmount.amount)."""
    decimals: int | None
    """Mint precision; None when the RPC omitted it."""


@dataclass(frozen=True)
class TransactionRecord:
    """
    Transaction fields needed for relationship aggregation.

    pre_balances / post_balances are lamports indexed by position in
    account_keys. has_meta is False when the RPC returned no meta section;
    such records carry no balance data and are skipped by the aggregator.
    """

    signature: str | None
    block_time: int | None
    account_keys: tuple[str, ...]
    pre_balances: tuple[int, ...] = ()
    post_balances: tuple[int, ...] = ()
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()
    slot: int | None = None
    has_meta: bool = True
    has_token_balances: bool = field(default=False)
    """True when both token balance sections were present (possibly empty)."""
