"""
Error taxonomy for the analysis pipeline.

InvalidAddressError is terminal and never cached. UpstreamUnavailableError
aborts a run only when raised by the initial signature listing; it is turned
into an error payload and cached briefly. RateLimitedError is handled inside
the fetcher (backoff, then skip the batch) and never reaches callers.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for analysis pipeline errors."""


class InvalidAddressError(AnalysisError):
    """Address failed structural validation."""


class UpstreamUnavailableError(AnalysisError):
    """Transport, HTTP or RPC-level failure reaching the ledger provider."""


class RateLimitedError(UpstreamUnavailableError):
    """Provider throttled the request (HTTP 429 / Too Many Requests)."""
