"""Bech32 address helpers."""
from typing import Optional, Tuple

import bech32  # type: ignore


def decode_address(address: str) -> Tuple[str, list]:
    """Decodes a Bech32 address to (prefix, 5-bit words)."""
    hrp, data = bech32.bech32_decode(address)
    if hrp is None or data is None:
        raise ValueError(f"Invalid bech32 address: {address}")
    return hrp, data


def address_bytes(address: str) -> bytes:
    _, data = decode_address(address)
    decoded = bech32.convertbits(data, 5, 8, False)
    if decoded is None:
        raise ValueError("Error converting from bech32 words")
    return bytes(decoded)


def reencode_address(address: str, prefix: str) -> str:
    """
    Encode the bytes behind ``address`` under another human-readable prefix.

    Account and validator operator addresses of a Cosmos chain share the
    same bytes and only differ in prefix (``cosmos1..`` vs ``cosmosvaloper1..``).
    """
    _, data = decode_address(address)
    encoded = bech32.bech32_encode(prefix, data)
    if encoded is None:
        raise ValueError(f"Cannot encode address with prefix {prefix}")
    return encoded


def is_valid_address(address: str, expected_prefix: Optional[str] = None) -> bool:
    try:
        hrp, _ = decode_address(address)
    except ValueError:
        return False
    return not expected_prefix or hrp == expected_prefix
