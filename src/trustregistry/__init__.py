"""
Trust Registry - Identity, Reputation and Validation for Autonomous Agents

Layered on a shared ledger:
- Identity: sequential agent ids bound to owner addresses, domains and DIDs
- Reputation: server-issued feedback authorizations
- Validation: time-bounded validation requests and scores

Version: 0.3.0
"""

__version__ = "0.3.0"

from .exceptions import (
    AddressAlreadyRegistered,
    AgentNotFound,
    AuthorizationError,
    ConflictError,
    DIDAddressMismatch,
    DIDAlreadyRegistered,
    DIDNotRegistered,
    DomainAlreadyRegistered,
    FeedbackAlreadyAuthorized,
    InputValidationError,
    InsufficientFee,
    InvalidAddress,
    InvalidAgentSignature,
    InvalidDataHash,
    InvalidDeveloperDID,
    InvalidInput,
    InvalidResponse,
    NotFoundError,
    RequestExpired,
    SignatureExpired,
    TemporalError,
    TrustRegistryError,
    UnauthorizedFeedback,
    UnauthorizedRegistration,
    UnauthorizedUpdate,
    UnauthorizedValidator,
    ValidationAlreadyResponded,
    ValidationRequestNotFound,
)

from .ledger import Event, InMemoryEventBus, Ledger

from .identity import (
    Account,
    AgentRecord,
    DIDValidator,
    FeePolicy,
    IdentityRegistry,
    OpenPolicy,
    RegistrationPolicy,
    RequireDIDPolicy,
    RequireDomainPolicy,
    RequireIdentifierPolicy,
    build_did,
)

from .reputation import ReputationRegistry
from .validation import RequestState, ValidationRegistry, ValidationRequest

from .config import PolicyConfig, RegistryConfig
from .deployment import Deployment, deploy

__all__ = [
    "__version__",

    # Ledger
    "Ledger",
    "Event",
    "InMemoryEventBus",

    # Identity
    "Account",
    "AgentRecord",
    "DIDValidator",
    "IdentityRegistry",
    "RegistrationPolicy",
    "OpenPolicy",
    "RequireDomainPolicy",
    "RequireDIDPolicy",
    "RequireIdentifierPolicy",
    "FeePolicy",
    "build_did",

    # Reputation
    "ReputationRegistry",

    # Validation
    "RequestState",
    "ValidationRegistry",
    "ValidationRequest",

    # Configuration
    "PolicyConfig",
    "RegistryConfig",
    "Deployment",
    "deploy",

    # Exceptions
    "TrustRegistryError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InputValidationError",
    "TemporalError",
    "UnauthorizedRegistration",
    "UnauthorizedUpdate",
    "UnauthorizedFeedback",
    "UnauthorizedValidator",
    "AgentNotFound",
    "ValidationRequestNotFound",
    "DIDNotRegistered",
    "DomainAlreadyRegistered",
    "DIDAlreadyRegistered",
    "AddressAlreadyRegistered",
    "FeedbackAlreadyAuthorized",
    "ValidationAlreadyResponded",
    "InvalidInput",
    "InvalidAddress",
    "InvalidDataHash",
    "InvalidResponse",
    "DIDAddressMismatch",
    "InvalidDeveloperDID",
    "InvalidAgentSignature",
    "SignatureExpired",
    "InsufficientFee",
    "RequestExpired",
]
