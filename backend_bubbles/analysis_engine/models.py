"""
Finalized analysis results.

These are the immutable snapshots that get cached and served; the mutable
AccountAggregate objects they are built from are discarded after a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from backend_bubbles.analysis_engine.aggregator import AccountAggregate
from backend_bubbles.analysis_engine.units import format_amount


@dataclass(frozen=True)
class RelatedAccount:
    address: str
    total_volume: str
    """Formatted SOL-equivalent volume, e.g. "2.00 SOL"."""
    volume: float
    interactions: int
    last_interaction: int | None = None
    transaction_types: tuple[str, ...] = ()

    @classmethod
    def from_aggregate(cls, agg: AccountAggregate) -> "RelatedAccount":
        return cls(
            address=agg.address,
            total_volume=format_amount(agg.volume),
            volume=agg.volume,
            interactions=agg.interaction_count,
            last_interaction=agg.last_interaction,
            transaction_types=tuple(sorted(agg.transaction_types)),
        )

    def to_dict(self, detailed: bool = False) -> dict[str, Any]:
        out: dict[str, Any] = {"address": self.address, "totalSolVolume": self.total_volume}
        if detailed:
            out["interactions"] = self.interactions
            out["lastInteraction"] = self.last_interaction
            out["transactionTypes"] = list(self.transaction_types)
        return out


@dataclass(frozen=True)
class AnalysisResult:
    address: str
    is_valid: bool
    related_accounts: tuple[RelatedAccount, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.is_valid and self.error is None

    def to_dict(self, detailed: bool = False) -> dict[str, Any]:
        out: dict[str, Any] = {
            "address": self.address,
            "isValid": self.is_valid,
            "relatedAccounts": [a.to_dict(detailed) for a in self.related_accounts],
        }
        if self.error is not None:
            out["error"] = self.error
        return out
