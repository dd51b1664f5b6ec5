"""
Counterparty aggregation over fetched transactions.

Each record is reconciled in two passes: native SOL balance deltas
(meta.preBalances / postBalances, indexed by account position) and token
balance deltas (meta.preTokenBalances / postTokenBalances, keyed by owner
and mint). An account can show up in either section or both; both feed the
same AccountAggregate. Volumes are accumulated unrounded; formatting
happens once on the final totals.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from backend_bubbles.analysis_engine.units import (
    DEFAULT_TOKEN_DECIMALS,
    UnitConverter,
    lamports_to_sol,
)
from backend_bubbles.bubbles_logging import get_logger
from backend_bubbles.ledger.models import TokenBalance, TransactionRecord

logger = get_logger(__name__)

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
COMPUTE_BUDGET_PROGRAM_ID = "ComputeBudget111111111111111111111111111111"
VOTE_PROGRAM_ID = "Vote111111111111111111111111111111111111111"
SYSVAR_RENT_ID = "SysvarRent111111111111111111111111111111111"
SYSVAR_CLOCK_ID = "SysvarC1ock11111111111111111111111111111111"
SYSVAR_INSTRUCTIONS_ID = "Sysvar1nstructions1111111111111111111111111"

# Protocol/system accounts that are never counterparties
SYSTEM_ACCOUNTS = frozenset({
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    COMPUTE_BUDGET_PROGRAM_ID,
    VOTE_PROGRAM_ID,
    SYSVAR_RENT_ID,
    SYSVAR_CLOCK_ID,
    SYSVAR_INSTRUCTIONS_ID,
})

TX_NATIVE_INFLOW = "native_inflow"
TX_NATIVE_OUTFLOW = "native_outflow"
TX_TOKEN_TRANSFER = "token_transfer"


class RankingPolicy(str, enum.Enum):
    VOLUME_FIRST = "volume"
    INTERACTIONS_FIRST = "interactions"


@dataclass
class AccountAggregate:
    """Running totals for one counterparty within a single analysis run."""

    address: str
    interaction_count: int = 0
    volume: float = 0.0
    """SOL-equivalent, unrounded."""
    last_interaction: int | None = None
    transaction_types: set[str] = field(default_factory=set)

    def touch(self, block_time: int | None) -> None:
        if block_time is not None and (
            self.last_interaction is None or block_time > self.last_interaction
        ):
            self.last_interaction = block_time


class RelationshipAggregator:
    """
    Accumulates AccountAggregate per counterparty for one queried address.

    Records without a meta section are skipped and counted in
    skipped_records. An account is counted once per transaction even when
    both its SOL and token balances changed.
    """

    def __init__(
        self,
        queried_address: str,
        *,
        excluded: Iterable[str] = SYSTEM_ACCOUNTS,
        converter: UnitConverter | None = None,
    ) -> None:
        self.queried_address = queried_address
        self._excluded = frozenset(excluded) | {queried_address}
        self._converter = converter or UnitConverter()
        self._aggregates: dict[str, AccountAggregate] = {}
        self.records_seen = 0
        self.skipped_records = 0

    @property
    def aggregates(self) -> Mapping[str, AccountAggregate]:
        return self._aggregates

    def _get(self, address: str) -> AccountAggregate:
        agg = self._aggregates.get(address)
        if agg is None:
            agg = self._aggregates[address] = AccountAggregate(address=address)
        return agg

    def add_records(self, records: Iterable[TransactionRecord | None]) -> None:
        for record in records:
            self.add_record(record)

    def add_record(self, record: TransactionRecord | None) -> None:
        self.records_seen += 1
        if record is None or not record.has_meta:
            self.skipped_records += 1
            return
        touched = self._native_pass(record)
        if record.has_token_balances:
            touched |= self._token_pass(record)
        for address in touched:
            agg = self._aggregates[address]
            agg.interaction_count += 1
            agg.touch(record.block_time)

    def _native_pass(self, record: TransactionRecord) -> set[str]:
        touched: set[str] = set()
        n = min(len(record.account_keys), len(record.pre_balances), len(record.post_balances))
        for k in range(n):
            account = record.account_keys[k]
            if account in self._excluded:
                continue
            delta = record.post_balances[k] - record.pre_balances[k]
            if delta == 0:
                continue
            agg = self._get(account)
            agg.volume += lamports_to_sol(abs(delta))
            agg.transaction_types.add(TX_NATIVE_INFLOW if delta > 0 else TX_NATIVE_OUTFLOW)
            touched.add(account)
        return touched

    def _token_pass(self, record: TransactionRecord) -> set[str]:
        touched: set[str] = set()
        pre = _token_map(record.pre_token_balances)
        post = _token_map(record.post_token_balances)
        for key in pre.keys() | post.keys():
            owner, mint = key
            if owner in self._excluded:
                continue
            before = pre.get(key)
            after = post.get(key)
            pre_amount = before.amount if before else 0
            post_amount = after.amount if after else 0
            if pre_amount == post_amount:
                continue
            decimals = _decimals(before, after)
            agg = self._get(owner)
            agg.volume += self._converter.value_in_reference_unit(
                mint, abs(post_amount - pre_amount), decimals
            )
            agg.transaction_types.add(TX_TOKEN_TRANSFER)
            touched.add(owner)
        return touched


def _token_map(balances: Iterable[TokenBalance]) -> dict[tuple[str, str], TokenBalance]:
    return {(b.owner, b.mint): b for b in balances}


def _decimals(before: TokenBalance | None, after: TokenBalance | None) -> int:
    for b in (before, after):
        if b is not None and b.decimals is not None:
            return b.decimals
    return DEFAULT_TOKEN_DECIMALS


def aggregate(
    records: Iterable[TransactionRecord | None],
    queried_address: str,
) -> dict[str, AccountAggregate]:
    """Aggregate records for queried_address with the default exclusions and rates."""
    aggregator = RelationshipAggregator(queried_address)
    aggregator.add_records(records)
    return dict(aggregator.aggregates)


def rank_accounts(
    aggregates: Iterable[AccountAggregate],
    policy: RankingPolicy = RankingPolicy.VOLUME_FIRST,
    top_n: int | None = 25,
) -> list[AccountAggregate]:
    """
    Order counterparties (descending on both keys, address as final tie-break)
    and truncate to top_n. top_n=None keeps everything.
    """
    if policy is RankingPolicy.VOLUME_FIRST:
        key = lambda a: (-a.volume, -a.interaction_count, a.address)  # noqa: E731
    else:
        key = lambda a: (-a.interaction_count, -a.volume, a.address)  # noqa: E731
    ranked = sorted(aggregates, key=key)
    return ranked if top_n is None else ranked[:top_n]
