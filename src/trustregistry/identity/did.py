"""
DID Address Binding

Checks whether a decentralized identifier cryptographically embeds an account
address. An address-controlled DID has the shape::

    did:<method>:<network>:<subnet>:<base58 payload>

and its payload decodes to exactly 31 bytes laid out as::

    [0, 2)    version prefix
    [2, 9)    zero padding marking the identifier as address-controlled
    [9, 29)   embedded 20-byte account address
    [29, 31)  checksum tail (not interpreted here)

Everything in this module is pure and deterministic.
"""

from __future__ import annotations

import hashlib
from typing import Optional

import base58

from trustregistry.address import AddressLike, address_bytes
from trustregistry.constants import (
    DEFAULT_DID_METHOD,
    DID_ADDRESS_END,
    DID_ADDRESS_START,
    DID_DECODE_BUFFER_SIZE,
    DID_PADDING_START,
    DID_PAYLOAD_LENGTH,
    DID_SEPARATOR,
    DID_SEPARATOR_COUNT,
    ZERO_ADDRESS,
)
from trustregistry.exceptions import InvalidAddress, TrustRegistryError

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {symbol: value for value, symbol in enumerate(BASE58_ALPHABET)}

DEFAULT_VERSION_PREFIX = b"\x01\x01"


class DIDDecodeError(TrustRegistryError):
    """Raised when a DID payload cannot be decoded."""


def base58_decode(text: str, buffer_size: int = DID_DECODE_BUFFER_SIZE) -> bytes:
    """Decode base58 text into a fixed-size big-endian scratch buffer.

    Each symbol folds in as ``value = value * 58 + digit``, propagating the
    carry from the last byte towards the first. Leading ``1`` symbols map to
    leading zero bytes independently of the conversion.

    Args:
        text: Base58 encoded text.
        buffer_size: Size of the scratch buffer in bytes.

    Returns:
        The decoded bytes.

    Raises:
        DIDDecodeError: On an unknown symbol or when the value overflows the
            buffer.
    """
    zeros = 0
    while zeros < len(text) and text[zeros] == BASE58_ALPHABET[0]:
        zeros += 1

    buffer = bytearray(buffer_size)
    used = 0  # bytes of buffer touched so far, counted from the end
    for position, symbol in enumerate(text[zeros:], start=zeros):
        carry = _BASE58_INDEX.get(symbol)
        if carry is None:
            raise DIDDecodeError(f"Invalid base58 symbol {symbol!r} at position {position}")
        i = 0
        while (carry or i < used) and i < buffer_size:
            index = buffer_size - 1 - i
            carry += 58 * buffer[index]
            buffer[index] = carry & 0xFF
            carry >>= 8
            i += 1
        if carry:
            raise DIDDecodeError(f"Base58 value overflows {buffer_size}-byte buffer")
        used = i

    significant = bytes(buffer[buffer_size - used:]).lstrip(b"\x00")
    return b"\x00" * zeros + significant


def split_did(did: str) -> Optional[tuple[str, str]]:
    """Split a DID into its method prefix and payload.

    Returns:
        ``(prefix, payload)`` or ``None`` when the DID does not contain
        exactly four separators.
    """
    if did.count(DID_SEPARATOR) != DID_SEPARATOR_COUNT:
        return None
    prefix, _, payload = did.rpartition(DID_SEPARATOR)
    return prefix, payload


def decode_payload(did: str) -> bytes:
    """Return the decoded payload bytes of a DID.

    Raises:
        DIDDecodeError: If the DID is malformed or its payload is not base58.
    """
    parts = split_did(did)
    if parts is None:
        raise DIDDecodeError(
            f"DID must contain exactly {DID_SEPARATOR_COUNT} '{DID_SEPARATOR}' separators"
        )
    return base58_decode(parts[1])


class DIDValidator:
    """Stateless verifier of DID-to-address bindings.

    Example:
        >>> did = build_did("0x" + "ab" * 20)
        >>> DIDValidator.validate(did, "0x" + "ab" * 20)
        True
    """

    @staticmethod
    def extract_address(did: str) -> tuple[str, bool]:
        """Extract the embedded address from an address-controlled DID.

        Returns:
            ``(address, True)`` on success, ``(ZERO_ADDRESS, False)`` otherwise.
        """
        try:
            payload = decode_payload(did)
        except DIDDecodeError:
            return ZERO_ADDRESS, False

        if len(payload) != DID_PAYLOAD_LENGTH:
            return ZERO_ADDRESS, False
        if any(payload[DID_PADDING_START:DID_ADDRESS_START]):
            return ZERO_ADDRESS, False
        return "0x" + payload[DID_ADDRESS_START:DID_ADDRESS_END].hex(), True

    @classmethod
    def validate(cls, did: str, expected_address: AddressLike) -> bool:
        """Check that ``did`` embeds exactly ``expected_address``."""
        try:
            expected = address_bytes(expected_address)
        except InvalidAddress:
            return False
        address, ok = cls.extract_address(did)
        return ok and bytes.fromhex(address[2:]) == expected


def build_did(
    address: AddressLike,
    method: str = DEFAULT_DID_METHOD,
    version_prefix: bytes = DEFAULT_VERSION_PREFIX,
) -> str:
    """Mint an address-controlled DID for ``address``.

    Args:
        address: Account address to embed.
        method: DID prefix holding exactly three separators
            (e.g. ``did:agent:ledger:main``).
        version_prefix: Two leading payload bytes.

    Raises:
        ValueError: If ``method`` or ``version_prefix`` has the wrong shape.
        InvalidAddress: If ``address`` is malformed.
    """
    if method.count(DID_SEPARATOR) != DID_SEPARATOR_COUNT - 1:
        raise ValueError(
            f"DID method prefix must contain {DID_SEPARATOR_COUNT - 1} separators: {method!r}"
        )
    if len(version_prefix) != DID_PADDING_START:
        raise ValueError(f"Version prefix must be {DID_PADDING_START} bytes")

    body = (
        version_prefix
        + b"\x00" * (DID_ADDRESS_START - DID_PADDING_START)
        + address_bytes(address)
    )
    checksum = hashlib.sha256(body).digest()[: DID_PAYLOAD_LENGTH - DID_ADDRESS_END]
    payload = base58.b58encode(body + checksum).decode("ascii")
    return f"{method}{DID_SEPARATOR}{payload}"
