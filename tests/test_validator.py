"""
Tests for Solana address validation.
"""

from __future__ import annotations

import pytest

from backend_bubbles.analysis_engine.errors import InvalidAddressError
from backend_bubbles.ledger.validator import AddressValidator, is_valid_solana_address

VALID_WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"


def test_valid_addresses():
    assert is_valid_solana_address(VALID_WALLET)
    assert is_valid_solana_address("11111111111111111111111111111111")


@pytest.mark.parametrize(
    "address",
    ["", "   ", "not-a-valid-pubkey", "0OIl", VALID_WALLET + "extra", " " + VALID_WALLET],
)
def test_invalid_addresses(address):
    assert not AddressValidator().is_valid(address)


def test_require_valid_raises():
    validator = AddressValidator()
    assert validator.require_valid(VALID_WALLET) == VALID_WALLET
    with pytest.raises(InvalidAddressError, match="Invalid Solana address format"):
        validator.require_valid("bogus")
