"""
Pytest fixtures for Backend Bubbles tests.

No network: the ledger client is a fake keyed by signature, sleeps are
recorded instead of awaited, and the cache runs on a manual clock.
"""

from __future__ import annotations

from typing import Sequence

import pytest

from backend_bubbles.config.settings import Settings
from backend_bubbles.ledger.models import SignatureInfo, TokenBalance, TransactionRecord

QUERIED = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER_VALID = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
COUNTERPARTY_X = "XCounterparty1111111111111111111111111111111"
COUNTERPARTY_Y = "YCounterparty1111111111111111111111111111111"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Drop-in for asyncio.sleep that records durations and returns immediately."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeLedgerClient:
    """
    In-memory ledger. records maps signature -> record (None = not found).
    errors maps signature -> exceptions raised on successive get_record calls;
    batch_errors are raised on successive get_records calls.
    """

    def __init__(
        self,
        records: dict[str, TransactionRecord | None] | None = None,
        *,
        signatures: Sequence[str] | None = None,
        list_error: Exception | None = None,
        errors: dict[str, list[Exception]] | None = None,
        batch_errors: list[Exception] | None = None,
    ) -> None:
        self.records = dict(records or {})
        self.signatures = list(signatures if signatures is not None else self.records)
        self.list_error = list_error
        self.errors = {k: list(v) for k, v in (errors or {}).items()}
        self.batch_errors = list(batch_errors or [])
        self.list_calls: list[tuple[str, int]] = []
        self.record_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    async def list_recent_signatures(self, address: str, limit: int) -> list[SignatureInfo]:
        self.list_calls.append((address, limit))
        if self.list_error is not None:
            raise self.list_error
        return [
            SignatureInfo(signature=s, slot=100 - i, err=None, block_time=None)
            for i, s in enumerate(self.signatures[:limit])
        ]

    async def get_record(self, signature: str) -> TransactionRecord | None:
        self.record_calls.append(signature)
        pending = self.errors.get(signature)
        if pending:
            raise pending.pop(0)
        return self.records.get(signature)

    async def get_records(self, signatures: Sequence[str]) -> list[TransactionRecord | None]:
        self.batch_calls.append(list(signatures))
        if self.batch_errors:
            raise self.batch_errors.pop(0)
        return [self.records.get(s) for s in signatures]


def make_record(
    signature: str,
    account_keys: Sequence[str],
    pre_balances: Sequence[int] = (),
    post_balances: Sequence[int] = (),
    *,
    pre_tokens: Sequence[TokenBalance] = (),
    post_tokens: Sequence[TokenBalance] = (),
    block_time: int | None = 1_700_000_000,
    with_tokens: bool | None = None,
    has_meta: bool = True,
) -> TransactionRecord:
    if with_tokens is None:
        with_tokens = bool(pre_tokens or post_tokens)
    return TransactionRecord(
        signature=signature,
        block_time=block_time,
        account_keys=tuple(account_keys),
        pre_balances=tuple(pre_balances),
        post_balances=tuple(post_balances),
        pre_token_balances=tuple(pre_tokens),
        post_token_balances=tuple(post_tokens),
        has_meta=has_meta,
        has_token_balances=with_tokens,
    )


def native_record(signature: str, counterparty: str, delta: int, block_time: int | None = 1_700_000_000) -> TransactionRecord:
    """Queried address pays counterparty `delta` lamports (no token sections)."""
    return make_record(
        signature,
        [QUERIED, counterparty],
        [10_000_000_000, 5_000_000_000],
        [10_000_000_000 - delta, 5_000_000_000 + delta],
        block_time=block_time,
    )


def make_settings(**overrides) -> Settings:
    values = dict(rpc_url="http://rpc.test", provider_tier="standard")
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def settings() -> Settings:
    return make_settings()
