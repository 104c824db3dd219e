"""
Delegated Consent Signing

Ed25519 accounts and domain-separated digests for off-ledger consent.

An account's address is the last 20 bytes of the SHA-256 of its raw public
key. A consent signature is the 32-byte public key followed by the 64-byte
Ed25519 signature, so the signer's address can be recovered from the
signature alone and compared against the claimed agent address.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from trustregistry.address import AddressLike, normalize_address
from trustregistry.constants import ADDRESS_LENGTH, CONSENT_TYPE

logger = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
CONSENT_SIGNATURE_LENGTH = PUBLIC_KEY_LENGTH + SIGNATURE_LENGTH
DIGEST_PREFIX = b"\x19\x01"


def address_from_public_key(public_key: bytes) -> str:
    """Derive the account address of a raw Ed25519 public key."""
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise ValueError(f"Public key must be {PUBLIC_KEY_LENGTH} bytes")
    return "0x" + hashlib.sha256(public_key).digest()[-ADDRESS_LENGTH:].hex()


class Account:
    """An Ed25519 keypair that signs consent digests.

    Args:
        private_key: Ed25519 private key.

    Example:
        >>> account = Account.generate()
        >>> signature = account.sign_digest(b"\\x00" * 32)
        >>> recover_signer(b"\\x00" * 32, signature) == account.address
        True
    """

    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_bytes = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.address = address_from_public_key(self._public_bytes)

    @classmethod
    def generate(cls) -> "Account":
        """Create an account with a fresh random key."""
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, data: bytes) -> "Account":
        """Load an account from a raw 32-byte private key."""
        return cls(ed25519.Ed25519PrivateKey.from_private_bytes(data))

    @property
    def public_key(self) -> bytes:
        return self._public_bytes

    def private_bytes(self) -> bytes:
        """Return the raw private key bytes."""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def sign_digest(self, digest: bytes) -> bytes:
        """Sign a digest and return the recoverable consent signature."""
        signature = self._private_key.sign(digest)
        logger.debug("Account %s signed %d-byte digest", self.address, len(digest))
        return self._public_bytes + signature

    def __repr__(self) -> str:
        return f"Account(address={self.address!r})"


def recover_signer(digest: bytes, signature: bytes) -> Optional[str]:
    """Return the address that produced ``signature`` over ``digest``.

    Returns:
        The signer's address, or ``None`` if the signature is malformed or
        does not verify.
    """
    if len(signature) != CONSENT_SIGNATURE_LENGTH:
        return None
    public_bytes = signature[:PUBLIC_KEY_LENGTH]
    try:
        public_key = ed25519.Ed25519PublicKey.from_public_bytes(public_bytes)
        public_key.verify(signature[PUBLIC_KEY_LENGTH:], digest)
    except (InvalidSignature, ValueError):
        return None
    return address_from_public_key(public_bytes)


def hash_struct(data: dict[str, Any]) -> bytes:
    """SHA-256 over the canonical JSON encoding of a flat structure."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).digest()


def domain_separator(
    name: str,
    version: str,
    chain_id: int,
    verifying_contract: AddressLike,
) -> bytes:
    """Compute the signing domain separator of a registry deployment."""
    return hash_struct(
        {
            "type": "SigningDomain",
            "name": name,
            "version": version,
            "chainId": chain_id,
            "verifyingContract": normalize_address(verifying_contract),
        }
    )


def consent_digest(
    separator: bytes,
    developer_did: str,
    agent_did: str,
    agent_address: AddressLike,
    description: str,
    nonce: int,
    expiry: int,
) -> bytes:
    """Compute the digest an agent signs to consent to delegated registration."""
    struct_hash = hash_struct(
        {
            "type": CONSENT_TYPE,
            "developerDID": developer_did,
            "agentDID": agent_did,
            "agentAddress": normalize_address(agent_address),
            "description": description,
            "nonce": nonce,
            "expiry": expiry,
        }
    )
    return hashlib.sha256(DIGEST_PREFIX + separator + struct_hash).digest()
