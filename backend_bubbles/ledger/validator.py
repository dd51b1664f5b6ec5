"""Solana address validation (structural only, no network)."""

from __future__ import annotations

from solders.pubkey import Pubkey

from backend_bubbles.analysis_engine.errors import InvalidAddressError

INVALID_ADDRESS_MESSAGE = "Invalid Solana address format"


class AddressValidator:
    """Accepts base58 strings that decode to a 32-byte public key."""

    def is_valid(self, address: str) -> bool:
        if not address or address != address.strip():
            return False
        try:
            Pubkey.from_string(address)
        except ValueError:
            return False
        return True

    def require_valid(self, address: str) -> str:
        """Return address unchanged; raise InvalidAddressError when malformed."""
        if not self.is_valid(address):
            raise InvalidAddressError(INVALID_ADDRESS_MESSAGE)
        return address


def is_valid_solana_address(address: str) -> bool:
    return AddressValidator().is_valid(address)
