"""Account address helpers.

Addresses are 20-byte account identifiers written as ``0x`` followed by 40
hex digits. They are normalized to lower case so comparisons are exact.
"""

from __future__ import annotations

from typing import Union

from trustregistry.constants import ADDRESS_LENGTH, ZERO_ADDRESS
from trustregistry.exceptions import InvalidAddress

AddressLike = Union[str, bytes]


def normalize_address(value: AddressLike) -> str:
    """Return the canonical lower-case form of an address.

    Args:
        value: ``0x``-prefixed hex string or 20 raw bytes.

    Raises:
        InvalidAddress: If the value is not a well-formed 20-byte address.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_LENGTH:
            raise InvalidAddress(f"Address must be {ADDRESS_LENGTH} bytes, got {len(value)}")
        return "0x" + bytes(value).hex()

    if not isinstance(value, str):
        raise InvalidAddress(f"Unsupported address type: {type(value).__name__}")

    text = value.strip()
    if not text.lower().startswith("0x"):
        raise InvalidAddress(f"Address must start with 0x: {value!r}")
    digits = text[2:]
    if len(digits) != ADDRESS_LENGTH * 2:
        raise InvalidAddress(f"Address must have {ADDRESS_LENGTH * 2} hex digits: {value!r}")
    try:
        bytes.fromhex(digits)
    except ValueError as exc:
        raise InvalidAddress(f"Address is not hex: {value!r}") from exc
    return "0x" + digits.lower()


def address_bytes(value: AddressLike) -> bytes:
    """Return the raw 20 bytes of an address."""
    return bytes.fromhex(normalize_address(value)[2:])


def require_account(value: AddressLike) -> str:
    """Normalize an address that must identify a real account (non-zero)."""
    address = normalize_address(value)
    if address == ZERO_ADDRESS:
        raise InvalidAddress("The zero address cannot own an agent")
    return address
