"""
Rate-limit-aware transaction retrieval.

Lists the most recent signatures for an address, then pulls full
transaction bodies in small batches separated by a fixed delay. The delay
is the rate-limit compliance mechanism, so batches are strictly
sequential. A throttled batch backs off and is retried a bounded number of
times, then skipped; a failed batch never aborts the run. Only a failure of
the initial signature listing propagates to the caller.
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from typing import AsyncIterator, Awaitable, Callable, Sequence

from backend_bubbles.analysis_engine.errors import RateLimitedError, UpstreamUnavailableError
from backend_bubbles.analysis_engine.policy import FetchPolicy
from backend_bubbles.bubbles_logging import get_logger
from backend_bubbles.bubbles_logging.logger import short_address
from backend_bubbles.ledger.client import LedgerClientProtocol
from backend_bubbles.ledger.models import TransactionRecord

logger = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class FetchStats:
    """Per-run diagnostics; never affects results."""

    signatures_listed: int = 0
    batches_attempted: int = 0
    batches_succeeded: int = 0
    batches_skipped: int = 0
    records_fetched: int = 0
    records_missing: int = 0
    throttle_events: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class RateLimitedFetcher:
    """
    Fetches a bounded window of recent transactions for one address.

    fetch() is an async generator yielding one list of records per
    successful batch. It is finite and not restartable; call it again to
    re-fetch. Stats for the most recent run are on last_stats.
    """

    def __init__(self, client: LedgerClientProtocol, *, sleep: SleepFn = asyncio.sleep) -> None:
        self._client = client
        self._sleep = sleep
        self.last_stats = FetchStats()

    async def list_signatures(self, address: str, policy: FetchPolicy) -> list[str]:
        """
        Most recent signatures, newest first, capped at policy.max_records.

        Throttling is retried with backoff up to policy.max_attempts; any
        failure left after that propagates.
        """
        for attempt in range(policy.max_attempts):
            try:
                infos = await self._client.list_recent_signatures(address, policy.signature_window)
                break
            except RateLimitedError as e:
                self.last_stats.throttle_events += 1
                logger.warning(
                    "fetcher_list_rate_limited",
                    wallet_id=short_address(address),
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    backoff_sec=policy.backoff_sec,
                )
                if attempt + 1 >= policy.max_attempts:
                    raise UpstreamUnavailableError(
                        f"Rate limited while listing signatures: {e}"
                    ) from e
                await self._sleep(policy.backoff_sec)
        self.last_stats.signatures_listed = len(infos)
        return [info.signature for info in infos][: policy.max_records]

    async def fetch(self, address: str, policy: FetchPolicy) -> AsyncIterator[list[TransactionRecord]]:
        self.last_stats = stats = FetchStats()
        signatures = await self.list_signatures(address, policy)
        batches = [
            signatures[i : i + policy.batch_size]
            for i in range(0, len(signatures), policy.batch_size)
        ]
        logger.info(
            "fetcher_started",
            wallet_id=short_address(address),
            tier=policy.tier,
            signatures=len(signatures),
            batches=len(batches),
        )
        for index, batch in enumerate(batches):
            if index > 0:
                await self._sleep(policy.batch_delay_sec)
            stats.batches_attempted += 1
            records = await self._fetch_batch(batch, policy, index)
            if records is None:
                stats.batches_skipped += 1
                continue
            stats.batches_succeeded += 1
            usable = [r for r in records if r is not None]
            stats.records_fetched += len(usable)
            stats.records_missing += len(records) - len(usable)
            yield usable
        logger.info("fetcher_finished", wallet_id=short_address(address), **stats.to_dict())

    async def _fetch_batch(
        self,
        batch: Sequence[str],
        policy: FetchPolicy,
        index: int,
    ) -> list[TransactionRecord | None] | None:
        """Retrieve one batch; None when it has to be skipped."""
        for attempt in range(policy.max_attempts):
            try:
                return await self._retrieve(batch, policy)
            except RateLimitedError:
                self.last_stats.throttle_events += 1
                logger.warning(
                    "fetcher_batch_rate_limited",
                    batch_index=index,
                    attempt=attempt + 1,
                    max_attempts=policy.max_attempts,
                    backoff_sec=policy.backoff_sec,
                )
                await self._sleep(policy.backoff_sec)
            except UpstreamUnavailableError as e:
                logger.warning("fetcher_batch_failed", batch_index=index, error=str(e))
                return None
        logger.warning("fetcher_batch_skipped", batch_index=index, reason="rate_limit_budget_exhausted")
        return None

    async def _retrieve(self, batch: Sequence[str], policy: FetchPolicy) -> list[TransactionRecord | None]:
        if policy.use_batch_requests:
            return await self._client.get_records(list(batch))
        records: list[TransactionRecord | None] = []
        for i, signature in enumerate(batch):
            if i > 0:
                await self._sleep(policy.request_delay_sec)
            try:
                records.append(await self._client.get_record(signature))
            except RateLimitedError:
                raise
            except UpstreamUnavailableError as e:
                logger.debug("fetcher_record_failed", signature=signature[:16] + "...", error=str(e))
                records.append(None)
        return records
