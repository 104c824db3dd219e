"""
Registration Policies

Pluggable checks run by every registration path. A policy decides which
identifying fields an agent must carry and whether a registration fee is
charged. Fees are burned: they leave circulation and are only tallied.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from trustregistry.exceptions import InsufficientFee, InvalidInput

logger = logging.getLogger(__name__)


class RegistrationPolicy(ABC):
    """Base class for registration policies.

    ``check`` runs before any state changes; ``settle`` runs once the
    registration has been committed to the directory.
    """

    name: str = "policy"

    @abstractmethod
    def check_identifiers(self, domain: str, did: str) -> None:
        """Reject identifier combinations the deployment does not accept.

        Raises:
            InvalidInput: If the identifiers do not satisfy the policy.
        """

    def check_payment(self, value: int) -> None:
        """Reject an insufficient payment. Free policies accept anything."""

    def check(self, domain: str, did: str, value: int) -> None:
        self.check_identifiers(domain, did)
        self.check_payment(value)

    def settle(self, value: int) -> None:
        """Apply the side effects of a committed registration."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class OpenPolicy(RegistrationPolicy):
    """Accepts agents without any identifying field."""

    name = "open"

    def check_identifiers(self, domain: str, did: str) -> None:
        return None


class RequireDomainPolicy(RegistrationPolicy):
    """Every agent must carry a domain."""

    name = "require_domain"

    def check_identifiers(self, domain: str, did: str) -> None:
        if not domain:
            raise InvalidInput("A domain is required")


class RequireDIDPolicy(RegistrationPolicy):
    """Every agent must carry a DID."""

    name = "require_did"

    def check_identifiers(self, domain: str, did: str) -> None:
        if not did:
            raise InvalidInput("A DID is required")


class RequireIdentifierPolicy(RegistrationPolicy):
    """Every agent must carry a domain, a DID, or both."""

    name = "require_identifier"

    def check_identifiers(self, domain: str, did: str) -> None:
        if not domain and not did:
            raise InvalidInput("A domain or a DID is required")


class FeePolicy(RegistrationPolicy):
    """Charges a fixed fee per registration and burns the payment.

    Identifier requirements are delegated to ``identifiers``.

    Args:
        fee: Minimum payment per registration.
        identifiers: Policy for identifying fields (defaults to open).

    Example:
        >>> policy = FeePolicy(fee=5)
        >>> policy.check("", "", 5)
        >>> policy.settle(5)
        >>> policy.total_burned
        5
    """

    name = "fee"

    def __init__(self, fee: int, identifiers: Optional[RegistrationPolicy] = None) -> None:
        if fee < 0:
            raise ValueError("fee must be non-negative")
        self.fee = fee
        self.identifiers = identifiers or OpenPolicy()
        self.total_burned = 0

    def check_identifiers(self, domain: str, did: str) -> None:
        self.identifiers.check_identifiers(domain, did)

    def check_payment(self, value: int) -> None:
        if value < self.fee:
            raise InsufficientFee(f"Registration requires a fee of {self.fee}, got {value}")

    def settle(self, value: int) -> None:
        self.total_burned += value
        logger.info("Burned registration payment of %d (total %d)", value, self.total_burned)

    def __repr__(self) -> str:
        return f"FeePolicy(fee={self.fee}, identifiers={self.identifiers!r})"


POLICY_TYPES: dict[str, type[RegistrationPolicy]] = {
    OpenPolicy.name: OpenPolicy,
    RequireDomainPolicy.name: RequireDomainPolicy,
    RequireDIDPolicy.name: RequireDIDPolicy,
    RequireIdentifierPolicy.name: RequireIdentifierPolicy,
}
