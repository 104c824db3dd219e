"""Centralized exception hierarchy for the trust registries.

All registry exceptions inherit from TrustRegistryError and fall into one of
five categories: authorization, not-found, conflict, input validation and
temporal errors. Every rejected precondition raises its own leaf class so
callers can branch on the kind of failure.
"""


class TrustRegistryError(Exception):
    """Base exception for all trust registry errors."""


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class AuthorizationError(TrustRegistryError):
    """The caller is not allowed to perform the operation."""


class NotFoundError(TrustRegistryError):
    """A referenced key is absent."""


class ConflictError(TrustRegistryError):
    """A uniqueness or one-shot invariant would be violated."""


class InputValidationError(TrustRegistryError):
    """Malformed or cryptographically unverifiable input."""


class TemporalError(TrustRegistryError):
    """The operation arrived outside its time window."""


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class UnauthorizedRegistration(AuthorizationError):
    """Caller tried to register an address other than its own."""


class UnauthorizedUpdate(AuthorizationError):
    """Caller is not the current owner of the agent."""


class UnauthorizedFeedback(AuthorizationError):
    """Caller is not the owner of the server agent."""


class UnauthorizedValidator(AuthorizationError):
    """Caller is not the owner of the designated validator agent."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class AgentNotFound(NotFoundError):
    """No agent is registered under the given key."""


class ValidationRequestNotFound(NotFoundError):
    """No validation request occupies the given data hash."""


class DIDNotRegistered(NotFoundError):
    """No agent is registered under the given DID."""


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class DomainAlreadyRegistered(ConflictError):
    """The normalized domain belongs to another agent."""


class DIDAlreadyRegistered(ConflictError):
    """The DID belongs to another agent."""


class AddressAlreadyRegistered(ConflictError):
    """The owner address already controls an agent."""


class FeedbackAlreadyAuthorized(ConflictError):
    """The client/server pair already holds an authorization."""


class ValidationAlreadyResponded(ConflictError):
    """The validation request already has a response."""


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InvalidInput(InputValidationError):
    """Identifier fields do not satisfy the registration policy."""


class InvalidAddress(InputValidationError):
    """Address is malformed or the zero address."""


class InvalidDataHash(InputValidationError):
    """Data hash is not a non-zero 32-byte digest."""


class InvalidResponse(InputValidationError):
    """Validation score is outside the accepted range."""


class DIDAddressMismatch(InputValidationError):
    """The DID does not embed the expected address."""


class InvalidDeveloperDID(InputValidationError):
    """The developer DID does not embed the developer address."""


class InvalidAgentSignature(InputValidationError):
    """The consent signature was not produced by the agent address."""


class SignatureExpired(InputValidationError):
    """The consent expiry lies in the past."""


class InsufficientFee(InputValidationError):
    """The registration payment is below the policy fee."""


# ---------------------------------------------------------------------------
# Temporal
# ---------------------------------------------------------------------------


class RequestExpired(TemporalError):
    """The validation request's expiration window has passed."""


__all__ = [
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
