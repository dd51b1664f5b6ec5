"""
Relationship analysis engine.

Fetch (rate-limit aware) -> aggregate per counterparty -> rank -> format,
fronted by a TTL result cache. The orchestrator ties the stages together.
"""

from backend_bubbles.analysis_engine.aggregator import (
    AccountAggregate,
    RankingPolicy,
    RelationshipAggregator,
    aggregate,
    rank_accounts,
)
from backend_bubbles.analysis_engine.cache import ResultCache
from backend_bubbles.analysis_engine.errors import (
    AnalysisError,
    InvalidAddressError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from backend_bubbles.analysis_engine.units import format_amount, value_in_reference_unit

__all__ = [
    "AccountAggregate",
    "AnalysisError",
    "InvalidAddressError",
    "RankingPolicy",
    "RateLimitedError",
    "RelationshipAggregator",
    "ResultCache",
    "UpstreamUnavailableError",
    "aggregate",
    "format_amount",
    "rank_accounts",
    "value_in_reference_unit",
]
