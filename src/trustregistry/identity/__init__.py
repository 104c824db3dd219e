"""
Identity Registry

Agent directory with address-bound identifiers:
- Sequential agent ids bound to one owner address
- Case-insensitive unique domains
- Address-controlled DIDs verified by decoding their payload
- Delegated registration backed by an agent's signed consent
- Pluggable registration policies (identifier requirements, burned fees)
"""

from .did import (
    BASE58_ALPHABET,
    DIDDecodeError,
    DIDValidator,
    base58_decode,
    build_did,
    decode_payload,
)
from .policy import (
    FeePolicy,
    OpenPolicy,
    RegistrationPolicy,
    RequireDIDPolicy,
    RequireDomainPolicy,
    RequireIdentifierPolicy,
)
from .registry import AgentRecord, IdentityRegistry, normalize_domain
from .signing import Account, address_from_public_key, recover_signer

__all__ = [
    "BASE58_ALPHABET",
    "DIDDecodeError",
    "DIDValidator",
    "base58_decode",
    "build_did",
    "decode_payload",
    "RegistrationPolicy",
    "OpenPolicy",
    "RequireDomainPolicy",
    "RequireDIDPolicy",
    "RequireIdentifierPolicy",
    "FeePolicy",
    "AgentRecord",
    "IdentityRegistry",
    "normalize_domain",
    "Account",
    "address_from_public_key",
    "recover_signer",
]
