"""
Value normalization to SOL (the reference unit) and display formatting.

Token rates are static market approximations used to rank counterparties,
not live prices; never treat the output as a financial-grade valuation.
"""

from __future__ import annotations

from collections.abc import Mapping

REFERENCE_UNIT = "SOL"
LAMPORTS_PER_SOL = 1_000_000_000
DEFAULT_TOKEN_DECIMALS = 6

# Mint address -> SOL per whole token
TOKEN_TO_SOL_RATES: Mapping[str, float] = {
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": 0.004,  # USDC
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": 0.004,  # USDT
    "So11111111111111111111111111111111111111112": 1.0,  # Wrapped SOL
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": 1.0,  # mSOL
    "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1": 1.0,  # bSOL
    "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB": 0.0035,  # JUP
    "7vfCXTUXx5WJV5JADk17DUJ4ksgau7utNKj4b963voxs": 0.15,  # ETH (Wormhole)
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": 0.00000006,  # BONK
    "WENWENvqqNya429ubCdR81ZmD69brwQaaBYY6p3LCpk": 0.000001,  # WEN
    "hntyVP6YFm1Hg25TN9WGLqM12b8TQmcknKrdu1oxWux": 0.000003,  # HNT
    "MEW1gQWJ3nEXg2qgERiKu7FAFj79PHvQVREQUzScPP5": 0.0001,  # MEW
    "MangoCzJ36AjZyKwVj3VnYU4GTonjfVEnJmvvWaxLac": 0.0001,  # MNGO
    "SHDWyBxihqiCj6YekG2GUr7wqKLeLAMK1gHZck9pL6y": 0.000002,  # SHDW
    "A9mUU4qviSctJVPJdBJWkb28deg915LYJKrzQ19ji3FM": 0.000001,  # USDCet
}


class UnitConverter:
    """Converts raw token amounts to SOL via a static rate table; unknown mints are worth 0."""

    def __init__(self, rates: Mapping[str, float] | None = None) -> None:
        self._rates = dict(TOKEN_TO_SOL_RATES if rates is None else rates)

    def rate(self, mint: str) -> float:
        return self._rates.get(mint, 0.0)

    def value_in_reference_unit(self, mint: str, raw_amount: int | float, decimals: int) -> float:
        rate = self.rate(mint)
        if rate == 0.0 or raw_amount == 0:
            return 0.0
        return raw_amount / (10 ** decimals) * rate


_DEFAULT_CONVERTER = UnitConverter()


def value_in_reference_unit(mint: str, raw_amount: int | float, decimals: int) -> float:
    """raw_amount / 10**decimals * rate(mint), using the default rate table."""
    return _DEFAULT_CONVERTER.value_in_reference_unit(mint, raw_amount, decimals)


def lamports_to_sol(lamports: int | float) -> float:
    return lamports / LAMPORTS_PER_SOL


def format_amount(value: float, unit: str = REFERENCE_UNIT) -> str:
    """
    Human-readable amount with precision scaled to magnitude.

    0 -> "0 SOL"; < 0.001 -> 6 dp; < 1 -> 3 dp; < 1000 -> 2 dp; else 0 dp.
    Apply only to final accumulated volumes, never to per-transaction increments.
    """
    if value == 0:
        return f"0 {unit}"
    if value < 0.001:
        return f"{value:.6f} {unit}"
    if value < 1:
        return f"{value:.3f} {unit}"
    if value < 1000:
        return f"{value:.2f} {unit}"
    return f"{value:.0f} {unit}"
