"""Shared constants for the trust registries."""

# Addresses and digests
ADDRESS_LENGTH = 20
ZERO_ADDRESS = "0x" + "00" * ADDRESS_LENGTH
HASH_LENGTH = 32
ZERO_HASH = b"\x00" * HASH_LENGTH

# Validation registry
EXPIRATION_WINDOW = 1000
SCORE_MIN = 0
SCORE_MAX = 100

# DID payload layout
DID_SEPARATOR = ":"
DID_SEPARATOR_COUNT = 4
DID_PAYLOAD_LENGTH = 31
DID_PADDING_START = 2
DID_ADDRESS_START = 9
DID_ADDRESS_END = DID_ADDRESS_START + ADDRESS_LENGTH
DID_DECODE_BUFFER_SIZE = 64
DEFAULT_DID_METHOD = "did:agent:ledger:main"

# Delegated consent signing domain
DEFAULT_REGISTRY_NAME = "AgentIdentityRegistry"
DEFAULT_REGISTRY_VERSION = "1"
DEFAULT_CHAIN_ID = 1
CONSENT_TYPE = "AgentRegistrationConsent"
DEFAULT_REGISTRY_ADDRESS = "0x" + "00" * 18 + "8004"
