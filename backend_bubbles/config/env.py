"""
Environment variable loading for Backend Bubbles.

- SOLANA_RPC_URL: RPC endpoint (highest priority)
- HELIUS_RPC_URL: full Helius endpoint URL
- HELIUS_API_KEY: Helius API key (mainnet URL is built from it)
- BUBBLES_PROVIDER_TIER: constrained | standard (overrides URL-based detection)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_bubbles/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
FALLBACK_RPC_URLS = (
    "https://rpc.ankr.com/solana",
    "https://api.mainnet-beta.solana.com",
)

TIER_CONSTRAINED = "constrained"
TIER_STANDARD = "standard"
_TIER_ALIASES = {
    "constrained": TIER_CONSTRAINED,
    "helius": TIER_CONSTRAINED,
    "free": TIER_CONSTRAINED,
    "standard": TIER_STANDARD,
    "premium": TIER_STANDARD,
}


def load_bubbles_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    load_dotenv(_ENV_PATH)


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_RPC_URL > HELIUS_API_KEY > public fallback.
    """
    load_bubbles_env()
    for var in ("SOLANA_RPC_URL", "HELIUS_RPC_URL"):
        url = (os.getenv(var) or "").strip()
        if url:
            return url
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return FALLBACK_RPC_URLS[0]


def detect_provider_tier(rpc_url: str) -> str:
    """Helius endpoints are treated as constrained (free plan, no batch support)."""
    return TIER_CONSTRAINED if "helius" in rpc_url.lower() else TIER_STANDARD


def get_provider_tier(rpc_url: str | None = None) -> str:
    """
    Return the provider tier: BUBBLES_PROVIDER_TIER when set, else detected from the RPC URL.
    Raises ValueError for an unknown explicit tier.
    """
    load_bubbles_env()
    raw = (os.getenv("BUBBLES_PROVIDER_TIER") or "").strip().lower()
    if raw:
        if raw not in _TIER_ALIASES:
            raise ValueError(f"Unknown BUBBLES_PROVIDER_TIER: {raw!r}")
        return _TIER_ALIASES[raw]
    return detect_provider_tier(rpc_url or get_solana_rpc_url())


def mask_rpc_url(rpc: str) -> str:
    """Mask API key in URL for logging."""
    if "api-key=" in rpc:
        return rpc.split("api-key=")[0] + "api-key=***"
    return rpc
