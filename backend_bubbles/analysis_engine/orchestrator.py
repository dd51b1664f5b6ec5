"""
Analysis entry point: validate, consult the cache, fetch, aggregate, rank, cache.

validating -> cache-lookup -> (hit: done)
                           -> (miss: fetching -> aggregating -> ranking -> formatting -> caching -> done)

Invalid addresses fail immediately and are not cached. Provider failures
(signature listing failed, transport down, whole-run deadline exceeded)
produce an error payload that is cached with the short error TTL. A run
that times out never writes a partial success.
"""

from __future__ import annotations

import asyncio
import time

from backend_bubbles.analysis_engine.aggregator import (
    RankingPolicy,
    RelationshipAggregator,
    rank_accounts,
)
from backend_bubbles.analysis_engine.cache import CacheStats, ResultCache
from backend_bubbles.analysis_engine.errors import AnalysisError, InvalidAddressError
from backend_bubbles.analysis_engine.fetcher import RateLimitedFetcher, SleepFn
from backend_bubbles.analysis_engine.models import AnalysisResult, RelatedAccount
from backend_bubbles.analysis_engine.policy import FetchPolicy, policy_for_tier
from backend_bubbles.bubbles_logging import bind_wallet
from backend_bubbles.config.settings import Settings
from backend_bubbles.ledger.client import LedgerClientProtocol
from backend_bubbles.ledger.validator import AddressValidator


class AnalysisOrchestrator:
    """
    Runs one analysis per address; distinct addresses may run concurrently.

    With settings.coalesce_requests, concurrent calls for the same uncached
    address share a single in-flight run.
    """

    def __init__(
        self,
        client: LedgerClientProtocol,
        cache: ResultCache[AnalysisResult],
        settings: Settings,
        *,
        validator: AddressValidator | None = None,
        policy: FetchPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._cache = cache
        self._settings = settings
        self._validator = validator or AddressValidator()
        self._policy = policy or policy_for_tier(settings.provider_tier, settings.signature_window)
        self._ranking = RankingPolicy(settings.ranking)
        self._sleep = sleep
        self._inflight: dict[str, asyncio.Task[AnalysisResult]] = {}

    @property
    def policy(self) -> FetchPolicy:
        return self._policy

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    async def analyze(self, address: str) -> AnalysisResult:
        try:
            self._validator.require_valid(address)
        except InvalidAddressError as e:
            bind_wallet(address).info("analysis_invalid_address")
            return AnalysisResult(address=address, is_valid=False, error=str(e))

        cached = self._cache.get(address)
        if cached is not None:
            bind_wallet(address).info("analysis_cache_hit")
            return cached

        if not self._settings.coalesce_requests:
            return await self._run_and_cache(address)

        task = self._inflight.get(address)
        if task is None:
            task = asyncio.ensure_future(self._run_and_cache(address))
            self._inflight[address] = task
            task.add_done_callback(lambda _: self._inflight.pop(address, None))
        return await asyncio.shield(task)

    async def _run_and_cache(self, address: str) -> AnalysisResult:
        log = bind_wallet(address)
        log.info("analysis_cache_miss", tier=self._policy.tier)
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._run(address), timeout=self._settings.analysis_timeout_sec
            )
        except asyncio.TimeoutError:
            message = f"analysis timed out after {self._settings.analysis_timeout_sec:g}s"
        except AnalysisError as e:
            message = str(e) or type(e).__name__
        else:
            self._cache.put(address, result, ttl_sec=self._settings.cache_ttl_sec)
            log.info(
                "analysis_completed",
                related_count=len(result.related_accounts),
                elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return result

        log.warning("analysis_failed", error=message)
        error_result = AnalysisResult(
            address=address,
            is_valid=True,
            error=f"Failed to analyze address: {message}",
        )
        self._cache.put(address, error_result, ttl_sec=self._settings.error_ttl_sec)
        return error_result

    async def _run(self, address: str) -> AnalysisResult:
        fetcher = RateLimitedFetcher(self._client, sleep=self._sleep)
        aggregator = RelationshipAggregator(address)
        async for records in fetcher.fetch(address, self._policy):
            aggregator.add_records(records)
        ranked = rank_accounts(aggregator.aggregates.values(), self._ranking, self._settings.top_n)
        bind_wallet(address).info(
            "analysis_aggregated",
            counterparties=len(aggregator.aggregates),
            records_skipped=aggregator.skipped_records,
            **fetcher.last_stats.to_dict(),
        )
        return AnalysisResult(
            address=address,
            is_valid=True,
            related_accounts=tuple(RelatedAccount.from_aggregate(a) for a in ranked),
        )
