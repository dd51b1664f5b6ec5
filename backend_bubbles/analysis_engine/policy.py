"""
Provider-tier fetch policy.

All tier-dependent knobs (batch size, delays, backoff, attempt budget,
record cap) are resolved once per run into a FetchPolicy and passed down;
nothing downstream branches on the tier again.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from backend_bubbles.config.env import TIER_CONSTRAINED, TIER_STANDARD


@dataclass(frozen=True)
class FetchPolicy:
    tier: str
    batch_size: int
    max_records: int
    batch_delay_sec: float
    request_delay_sec: float
    use_batch_requests: bool
    backoff_sec: float
    max_attempts: int
    signature_window: int = 50

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.max_records < 0:
            raise ValueError("max_records must be >= 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.signature_window < 1:
            raise ValueError("signature_window must be >= 1")


# Helius free plan: no batch support, throttles hard
CONSTRAINED_POLICY = FetchPolicy(
    tier=TIER_CONSTRAINED,
    batch_size=3,
    max_records=15,
    batch_delay_sec=2.0,
    request_delay_sec=0.3,
    use_batch_requests=False,
    backoff_sec=5.0,
    max_attempts=2,
)

STANDARD_POLICY = FetchPolicy(
    tier=TIER_STANDARD,
    batch_size=5,
    max_records=25,
    batch_delay_sec=1.0,
    request_delay_sec=0.0,
    use_batch_requests=True,
    backoff_sec=3.0,
    max_attempts=2,
)

TIER_POLICIES = {
    TIER_CONSTRAINED: CONSTRAINED_POLICY,
    TIER_STANDARD: STANDARD_POLICY,
}


def policy_for_tier(tier: str, signature_window: int | None = None) -> FetchPolicy:
    """Return the policy for a provider tier; raises ValueError for an unknown tier."""
    try:
        policy = TIER_POLICIES[tier]
    except KeyError:
        raise ValueError(f"Unknown provider tier: {tier!r}") from None
    if signature_window is not None:
        policy = replace(policy, signature_window=signature_window)
    return policy
