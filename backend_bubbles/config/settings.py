"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and the .env file.
- Validate settings and provide defaults for optional ones.
- Expose typed settings (RPC URL, provider tier, cache TTLs and size,
  ranking policy, API host/port) for the analysis engine and API server.

All values are static per deployment; there is no runtime mutation API.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass

from backend_bubbles.config.env import (
    get_provider_tier,
    get_solana_rpc_url,
    load_bubbles_env,
)

RANKING_VOLUME = "volume"
RANKING_INTERACTIONS = "interactions"


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Static deployment configuration."""

    rpc_url: str
    provider_tier: str
    cache_ttl_sec: float = 300.0
    error_ttl_sec: float = 60.0
    cache_max_entries: int = 1000
    top_n: int = 25
    ranking: str = RANKING_VOLUME
    signature_window: int = 50
    analysis_timeout_sec: float = 120.0
    request_timeout_sec: float = 30.0
    coalesce_requests: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    def __post_init__(self) -> None:
        if self.ranking not in (RANKING_VOLUME, RANKING_INTERACTIONS):
            raise ValueError(f"ranking must be 'volume' or 'interactions', got {self.ranking!r}")
        if self.error_ttl_sec > self.cache_ttl_sec:
            raise ValueError("error_ttl_sec must not exceed cache_ttl_sec")


def load_settings() -> Settings:
    """Build Settings from the current environment (no caching)."""
    load_bubbles_env()
    rpc_url = get_solana_rpc_url()
    return Settings(
        rpc_url=rpc_url,
        provider_tier=get_provider_tier(rpc_url),
        cache_ttl_sec=_env_float("BUBBLES_CACHE_TTL_SEC", 300.0),
        error_ttl_sec=_env_float("BUBBLES_ERROR_TTL_SEC", 60.0),
        cache_max_entries=_env_int("BUBBLES_CACHE_MAX_ENTRIES", 1000),
        top_n=_env_int("BUBBLES_TOP_N", 25),
        ranking=(os.getenv("BUBBLES_RANKING") or RANKING_VOLUME).strip().lower(),
        signature_window=_env_int("BUBBLES_SIGNATURE_WINDOW", 50),
        analysis_timeout_sec=_env_float("BUBBLES_ANALYSIS_TIMEOUT_SEC", 120.0),
        request_timeout_sec=_env_float("BUBBLES_REQUEST_TIMEOUT_SEC", 30.0),
        coalesce_requests=_env_bool("BUBBLES_COALESCE_REQUESTS"),
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=_env_int("API_PORT", 8000),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the process-wide settings, loaded once.

    Tests that change the environment call get_settings.cache_clear().
    """
    return load_settings()
