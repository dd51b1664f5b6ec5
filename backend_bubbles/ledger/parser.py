"""
Solana transaction parser — jsonParsed getTransaction payloads to TransactionRecord.

Purely structural: resolves account keys (legacy and versioned messages),
native balance arrays, and token balance sections. No aggregation logic.
"""

from __future__ import annotations

from typing import Any

from backend_bubbles.bubbles_logging import get_logger
from backend_bubbles.ledger.models import TokenBalance, TransactionRecord

logger = get_logger(__name__)


def _get_account_keys(
    message: dict[str, Any],
    meta: dict[str, Any] | None = None,
) -> list[str]:
    """
    Resolve accountKeys to a list of base58 strings (handles json vs jsonParsed).
    For versioned transactions, appends meta.loadedAddresses (writable + readonly).
    """
    keys = message.get("accountKeys") or []
    out: list[str] = []
    for k in keys:
        if isinstance(k, str):
            out.append(k)
        elif isinstance(k, dict):
            out.append(str(k.get("pubkey", "")))
    loaded = (meta or {}).get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        for addr in loaded.get(role) or []:
            if isinstance(addr, str):
                out.append(addr)
    return out


def _int_list(values: Any) -> tuple[int, ...]:
    if not isinstance(values, list):
        return ()
    return tuple(int(v or 0) for v in values)


def _parse_token_balance(item: Any) -> TokenBalance | None:
    """Parse one token balance entry; None when owner/mint/amount are unusable."""
    if not isinstance(item, dict):
        return None
    owner = item.get("owner")
    mint = item.get("mint")
    if not owner or not mint:
        return None
    ui = item.get("uiTokenAmount") or {}
    try:
        amount = int(ui.get("amount") or 0)
    except (TypeError, ValueError):
        logger.debug("parser_token_amount_invalid", mint=mint, amount=ui.get("amount"))
        return None
    decimals = ui.get("decimals")
    return TokenBalance(
        owner=str(owner),
        mint=str(mint),
        amount=amount,
        decimals=int(decimals) if decimals is not None else None,
    )


def _token_balances(values: Any) -> tuple[TokenBalance, ...]:
    if not isinstance(values, list):
        return ()
    parsed = (_parse_token_balance(v) for v in values)
    return tuple(b for b in parsed if b is not None)


def parse_record(payload: dict[str, Any] | None, signature: str | None = None) -> TransactionRecord | None:
    """
    Parse a getTransaction result into a TransactionRecord.

    Returns None for a null payload (transaction not found) and for a payload
    whose fields cannot be read. A payload with no meta section yields a
    record with has_meta=False.
    """
    if not payload:
        return None
    try:
        return _parse_payload(payload, signature)
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(
            "parser_record_malformed",
            signature=(signature or "")[:16] + "...",
            error=str(e),
        )
        return None


def _parse_payload(payload: dict[str, Any], signature: str | None) -> TransactionRecord:
    tx = payload.get("transaction") or {}
    message = tx.get("message") or {}
    meta = payload.get("meta")
    sigs = tx.get("signatures") or []
    if signature is None and sigs:
        signature = sigs[0]
    block_time = payload.get("blockTime")
    if block_time is not None:
        block_time = int(block_time)
    account_keys = tuple(_get_account_keys(message, meta))

    if not isinstance(meta, dict):
        return TransactionRecord(
            signature=signature,
            block_time=block_time,
            account_keys=account_keys,
            slot=payload.get("slot"),
            has_meta=False,
        )

    pre_tokens = meta.get("preTokenBalances")
    post_tokens = meta.get("postTokenBalances")
    return TransactionRecord(
        signature=signature,
        block_time=block_time,
        account_keys=account_keys,
        pre_balances=_int_list(meta.get("preBalances")),
        post_balances=_int_list(meta.get("postBalances")),
        pre_token_balances=_token_balances(pre_tokens),
        post_token_balances=_token_balances(post_tokens),
        slot=payload.get("slot"),
        has_meta=True,
        has_token_balances=isinstance(pre_tokens, list) and isinstance(post_tokens, list),
    )
