"""
Tests for RateLimitedFetcher: batching, delays, backoff-and-skip, failure propagation.

Sleeps are recorded (SleepRecorder) so tests run instantly.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from backend_bubbles.analysis_engine.errors import RateLimitedError, UpstreamUnavailableError
from backend_bubbles.analysis_engine.fetcher import RateLimitedFetcher
from backend_bubbles.analysis_engine.policy import (
    CONSTRAINED_POLICY,
    STANDARD_POLICY,
    policy_for_tier,
)
from conftest import COUNTERPARTY_X, QUERIED, FakeLedgerClient, native_record


def _records(n: int) -> dict:
    return {f"sig{i}": native_record(f"sig{i}", COUNTERPARTY_X, 1_000) for i in range(n)}


def _collect(fetcher, address, policy):
    async def go():
        return [batch async for batch in fetcher.fetch(address, policy)]

    return asyncio.run(go())


def test_policy_for_tier():
    assert policy_for_tier("constrained") is CONSTRAINED_POLICY
    assert policy_for_tier("standard") is STANDARD_POLICY
    assert policy_for_tier("standard", signature_window=20).signature_window == 20
    with pytest.raises(ValueError):
        policy_for_tier("gold")


def test_constrained_tier_is_more_conservative():
    assert CONSTRAINED_POLICY.batch_size < STANDARD_POLICY.batch_size
    assert CONSTRAINED_POLICY.batch_delay_sec > STANDARD_POLICY.batch_delay_sec
    assert CONSTRAINED_POLICY.backoff_sec > STANDARD_POLICY.backoff_sec
    assert CONSTRAINED_POLICY.max_records < STANDARD_POLICY.max_records


def test_standard_tier_uses_batch_requests(sleeper):
    client = FakeLedgerClient(_records(12))
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, STANDARD_POLICY)

    assert client.list_calls == [(QUERIED, 50)]
    assert [len(b) for b in batches] == [5, 5, 2]
    assert client.batch_calls[0] == ["sig0", "sig1", "sig2", "sig3", "sig4"]
    assert client.record_calls == []
    # delay before every batch except the first
    assert sleeper.calls == [1.0, 1.0]
    assert fetcher.last_stats.records_fetched == 12
    assert fetcher.last_stats.batches_succeeded == 3


def test_record_cap_bounds_work(sleeper):
    client = FakeLedgerClient(_records(40))
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, STANDARD_POLICY)
    assert sum(len(b) for b in batches) == STANDARD_POLICY.max_records
    assert fetcher.last_stats.signatures_listed == 40


def test_constrained_tier_sequential_requests(sleeper):
    client = FakeLedgerClient(_records(5))
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, CONSTRAINED_POLICY)

    assert [len(b) for b in batches] == [3, 2]
    assert client.batch_calls == []
    assert client.record_calls == ["sig0", "sig1", "sig2", "sig3", "sig4"]
    # 0.3 between requests in a batch, 2.0 between batches
    assert sleeper.calls == [0.3, 0.3, 2.0, 0.3]


def test_throttled_batch_retries_after_backoff(sleeper):
    client = FakeLedgerClient(_records(5), batch_errors=[RateLimitedError("429")])
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, STANDARD_POLICY)

    assert [len(b) for b in batches] == [5]
    assert len(client.batch_calls) == 2
    assert sleeper.calls == [STANDARD_POLICY.backoff_sec]
    assert fetcher.last_stats.throttle_events == 1
    assert fetcher.last_stats.batches_skipped == 0


def test_throttled_batch_skipped_after_attempt_budget(sleeper):
    errors = [RateLimitedError("429")] * STANDARD_POLICY.max_attempts
    client = FakeLedgerClient(_records(10), batch_errors=errors)
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, STANDARD_POLICY)

    # first batch skipped, second still delivered
    assert len(batches) == 1
    assert [r.signature for r in batches[0]] == ["sig5", "sig6", "sig7", "sig8", "sig9"]
    assert fetcher.last_stats.batches_skipped == 1
    assert fetcher.last_stats.throttle_events == STANDARD_POLICY.max_attempts
    assert sleeper.calls.count(STANDARD_POLICY.backoff_sec) == STANDARD_POLICY.max_attempts


def test_non_throttle_batch_failure_skips_without_retry(sleeper):
    client = FakeLedgerClient(_records(10), batch_errors=[UpstreamUnavailableError("boom")])
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, STANDARD_POLICY)

    assert len(batches) == 1
    assert len(client.batch_calls) == 2
    assert STANDARD_POLICY.backoff_sec not in sleeper.calls


def test_constrained_individual_failure_becomes_missing(sleeper):
    client = FakeLedgerClient(_records(3), errors={"sig1": [UpstreamUnavailableError("gone")]})
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, CONSTRAINED_POLICY)

    assert [r.signature for r in batches[0]] == ["sig0", "sig2"]
    assert fetcher.last_stats.records_missing == 1


def test_constrained_throttle_uses_longer_backoff(sleeper):
    policy = replace(CONSTRAINED_POLICY, max_attempts=1)
    client = FakeLedgerClient(_records(3), errors={"sig0": [RateLimitedError("429")]})
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, policy)

    assert batches == []
    assert sleeper.calls == [5.0]


def test_missing_records_are_dropped(sleeper):
    records = _records(3)
    records["sig1"] = None
    client = FakeLedgerClient(records)
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    batches = _collect(fetcher, QUERIED, STANDARD_POLICY)
    assert [r.signature for r in batches[0]] == ["sig0", "sig2"]
    assert fetcher.last_stats.records_missing == 1


def test_listing_failure_propagates(sleeper):
    client = FakeLedgerClient(list_error=UpstreamUnavailableError("rpc down"))
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    with pytest.raises(UpstreamUnavailableError, match="rpc down"):
        _collect(fetcher, QUERIED, STANDARD_POLICY)


def test_listing_throttle_exhausted_propagates(sleeper):
    client = FakeLedgerClient(list_error=RateLimitedError("429"))
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    with pytest.raises(UpstreamUnavailableError, match="Rate limited"):
        _collect(fetcher, QUERIED, STANDARD_POLICY)
    assert len(client.list_calls) == STANDARD_POLICY.max_attempts


def test_no_signatures_yields_nothing(sleeper):
    client = FakeLedgerClient({})
    fetcher = RateLimitedFetcher(client, sleep=sleeper)
    assert _collect(fetcher, QUERIED, STANDARD_POLICY) == []
    assert sleeper.calls == []
