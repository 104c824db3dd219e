"""
Identity Registry

The canonical agent directory. Each agent receives a sequential id bound to
an owner address and, optionally, a domain and an address-controlled DID.

One authoritative record table is kept alongside three secondary unique
indexes (normalized domain, DID, owner address). Every operation runs all of
its checks before touching any table, so a failed call leaves the directory
unchanged.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field

from trustregistry.address import AddressLike, normalize_address, require_account
from trustregistry.constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_REGISTRY_ADDRESS,
    DEFAULT_REGISTRY_NAME,
    DEFAULT_REGISTRY_VERSION,
)
from trustregistry.exceptions import (
    AddressAlreadyRegistered,
    AgentNotFound,
    DIDAddressMismatch,
    DIDAlreadyRegistered,
    DIDNotRegistered,
    DomainAlreadyRegistered,
    InvalidAgentSignature,
    InvalidDeveloperDID,
    SignatureExpired,
    TrustRegistryError,
    UnauthorizedRegistration,
    UnauthorizedUpdate,
)
from trustregistry.identity.did import DIDValidator
from trustregistry.identity.policy import OpenPolicy, RegistrationPolicy
from trustregistry.identity.signing import consent_digest, domain_separator, recover_signer
from trustregistry.ledger import (
    EVENT_AGENT_DEVELOPER_LINKED,
    EVENT_AGENT_REGISTERED,
    EVENT_AGENT_UPDATED,
    Ledger,
    Transaction,
)

logger = logging.getLogger(__name__)

EVENT_SOURCE = "identity"


class AgentRecord(BaseModel):
    """A registered agent.

    Attributes:
        agent_id: Sequential identifier, never reused.
        owner_address: Account controlling the record.
        domain: Display form of the agent's domain (``""`` when absent).
        did: Address-controlled DID bound to the owner (``""`` when absent).
        description: Free text.
        developer_did: DID of the developer that registered the agent on its
            behalf (``""`` when unlinked).
        registered_at: Ledger time of registration.
        updated_at: Ledger time of the last accepted change.
    """

    agent_id: int = Field(..., ge=1)
    owner_address: str
    domain: str = ""
    did: str = ""
    description: str = ""
    developer_did: str = ""
    registered_at: int = 0
    updated_at: int = 0


def normalize_domain(domain: str) -> str:
    """Return the case-insensitive lookup key of a domain."""
    return domain.lower()


class IdentityRegistry:
    """Agent directory with unique domains, DIDs and owner addresses.

    Args:
        ledger: Ledger that orders and authenticates calls.
        policy: Registration policy (identifier requirements, fees).
        chain_id: Chain id mixed into the consent signing domain.
        name: Registry name mixed into the consent signing domain.
        version: Registry version mixed into the consent signing domain.
        address: Registry address mixed into the consent signing domain.
        burn_nonce_on_failure: Consume a delegated-consent nonce as soon as the
            expiry check passes, even when the call later fails.

    Example:
        >>> ledger = Ledger()
        >>> registry = IdentityRegistry(ledger)
        >>> owner = "0x" + "11" * 20
        >>> registry.register(owner, owner, domain="Example.COM")
        1
        >>> registry.resolve_by_domain("example.com").domain
        'Example.COM'
    """

    def __init__(
        self,
        ledger: Ledger,
        policy: Optional[RegistrationPolicy] = None,
        *,
        chain_id: int = DEFAULT_CHAIN_ID,
        name: str = DEFAULT_REGISTRY_NAME,
        version: str = DEFAULT_REGISTRY_VERSION,
        address: AddressLike = DEFAULT_REGISTRY_ADDRESS,
        burn_nonce_on_failure: bool = True,
    ) -> None:
        self._ledger = ledger
        self._policy = policy or OpenPolicy()
        self._burn_nonce_on_failure = burn_nonce_on_failure
        self.address = normalize_address(address)
        self._separator = domain_separator(name, version, chain_id, self.address)

        self._agents: dict[int, AgentRecord] = {}
        self._by_domain: dict[str, int] = {}
        self._by_did: dict[str, int] = {}
        self._by_address: dict[str, int] = {}
        self._nonces: dict[str, int] = {}
        self._next_id = 1

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def policy(self) -> RegistrationPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        sender: AddressLike,
        address: AddressLike,
        domain: str = "",
        did: str = "",
        description: str = "",
        value: int = 0,
    ) -> int:
        """Register the caller's own address as a new agent.

        Args:
            sender: Authenticated caller; must equal ``address``.
            address: Owner address of the new agent.
            domain: Optional domain, unique case-insensitively.
            did: Optional DID that must embed ``address``.
            description: Optional free text.
            value: Payment attached for fee policies.

        Returns:
            The newly assigned agent id.

        Raises:
            InvalidAddress: If ``address`` is malformed or zero.
            UnauthorizedRegistration: If ``sender`` differs from ``address``.
            InvalidInput: If the identifiers violate the registration policy.
            InsufficientFee: If the payment is below the policy fee.
            DomainAlreadyRegistered: If the domain is taken.
            DIDAddressMismatch: If ``did`` does not embed ``address``.
            DIDAlreadyRegistered: If the DID is taken.
            AddressAlreadyRegistered: If ``address`` already owns an agent.
        """
        with self._ledger.transaction(sender, value) as tx:
            owner = require_account(address)
            if tx.sender != owner:
                raise UnauthorizedRegistration(
                    f"{tx.sender} cannot register on behalf of {owner}"
                )
            self._policy.check(domain, did, tx.value)
            self._check_available(owner, domain, did)

            record = self._insert(tx, owner, domain, did, description)
            self._policy.settle(tx.value)
            return record.agent_id

    def register_with_delegated_consent(
        self,
        sender: AddressLike,
        developer_did: str,
        agent_did: str,
        agent_address: AddressLike,
        description: str,
        expiry: int,
        agent_signature: bytes,
        value: int = 0,
    ) -> int:
        """Register an agent on its behalf, backed by its offline consent.

        The agent signs :meth:`consent_digest` for its current
        :meth:`nonces` value; a developer whose DID embeds the caller's
        address submits the registration.

        Returns:
            The newly assigned agent id.

        Raises:
            InvalidAddress: If ``agent_address`` is malformed or zero.
            InvalidDeveloperDID: If ``developer_did`` does not embed ``sender``.
            DIDAddressMismatch: If ``agent_did`` does not embed ``agent_address``.
            SignatureExpired: If the ledger time is past ``expiry``.
            InvalidAgentSignature: If the signature was not made by the agent.
            InvalidInput / InsufficientFee: On registration policy violations.
            DIDAlreadyRegistered / AddressAlreadyRegistered: On collisions.
        """
        with self._ledger.transaction(sender, value) as tx:
            agent = require_account(agent_address)
            if not DIDValidator.validate(developer_did, tx.sender):
                raise InvalidDeveloperDID(f"Developer DID is not bound to {tx.sender}")
            if not DIDValidator.validate(agent_did, agent):
                raise DIDAddressMismatch(f"Agent DID is not bound to {agent}")
            if tx.timestamp > expiry:
                raise SignatureExpired(f"Consent expired at {expiry} (now {tx.timestamp})")

            nonce = self._nonces.get(agent, 0)
            if self._burn_nonce_on_failure:
                self._nonces[agent] = nonce + 1

            try:
                digest = self.consent_digest(
                    developer_did, agent_did, agent, description, nonce, expiry
                )
                if recover_signer(digest, agent_signature) != agent:
                    raise InvalidAgentSignature(f"Consent was not signed by {agent}")
                self._policy.check("", agent_did, tx.value)
                self._check_available(agent, "", agent_did)
            except TrustRegistryError:
                if self._burn_nonce_on_failure:
                    logger.warning(
                        "Consent nonce %d of %s consumed by a failed registration",
                        nonce,
                        agent,
                    )
                raise

            self._nonces[agent] = nonce + 1
            record = self._insert(tx, agent, "", agent_did, description)
            record.developer_did = developer_did
            tx.emit(
                EVENT_AGENT_DEVELOPER_LINKED,
                source=EVENT_SOURCE,
                agent_id=record.agent_id,
                developer_did=developer_did,
            )
            self._policy.settle(tx.value)
            logger.info("Agent %d registered by developer %s", record.agent_id, tx.sender)
            return record.agent_id

    def nonces(self, address: AddressLike) -> int:
        """Return the next consent nonce expected from ``address``."""
        with self._ledger.lock:
            return self._nonces.get(normalize_address(address), 0)

    def consent_digest(
        self,
        developer_did: str,
        agent_did: str,
        agent_address: AddressLike,
        description: str,
        nonce: int,
        expiry: int,
    ) -> bytes:
        """Digest an agent signs to consent to delegated registration."""
        return consent_digest(
            self._separator,
            developer_did,
            agent_did,
            agent_address,
            description,
            nonce,
            expiry,
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_agent(
        self,
        sender: AddressLike,
        agent_id: int,
        new_address: Optional[AddressLike] = None,
        new_did: Optional[str] = None,
        new_description: Optional[str] = None,
        new_domain: Optional[str] = None,
    ) -> bool:
        """Change an agent's owner address, DID, description and/or domain.

        ``None`` leaves a field unchanged; an empty ``new_did`` or
        ``new_domain`` clears it. A DID (new or kept) must embed the address
        that is in effect after this call. Either every change applies or
        none does.

        Raises:
            AgentNotFound: If ``agent_id`` is unknown.
            UnauthorizedUpdate: If ``sender`` is not the current owner.
            InvalidAddress: If ``new_address`` is malformed or zero.
            AddressAlreadyRegistered: If ``new_address`` owns another agent.
            DomainAlreadyRegistered: If ``new_domain`` belongs to another agent.
            DIDAddressMismatch: If the resulting DID does not embed the
                resulting owner address.
            DIDAlreadyRegistered: If ``new_did`` belongs to another agent.
            InvalidInput: If the resulting identifiers violate the policy.
        """
        with self._ledger.transaction(sender) as tx:
            record = self._require_owner(tx, agent_id)
            updated: list[str] = []

            address = record.owner_address
            if new_address is not None:
                candidate = require_account(new_address)
                if candidate != record.owner_address:
                    if candidate in self._by_address:
                        raise AddressAlreadyRegistered(f"Address {candidate} already owns an agent")
                    address = candidate
                    updated.append("owner_address")

            domain = record.domain
            if new_domain is not None and new_domain != record.domain:
                holder = self._by_domain.get(normalize_domain(new_domain))
                if new_domain and holder not in (None, agent_id):
                    raise DomainAlreadyRegistered(f"Domain {new_domain!r} is already registered")
                domain = new_domain
                updated.append("domain")

            did = record.did
            if new_did is not None and new_did != record.did:
                did = new_did
                updated.append("did")
            if did and (did != record.did or address != record.owner_address):
                if not DIDValidator.validate(did, address):
                    raise DIDAddressMismatch(f"DID is not bound to {address}")
                if self._by_did.get(did, agent_id) != agent_id:
                    raise DIDAlreadyRegistered("DID is already registered")

            if "domain" in updated or "did" in updated:
                self._policy.check_identifiers(domain, did)

            description = record.description
            if new_description is not None and new_description != record.description:
                description = new_description
                updated.append("description")

            if not updated:
                return True

            self._reindex(self._by_address, record.owner_address, address, agent_id)
            self._reindex(
                self._by_domain,
                normalize_domain(record.domain),
                normalize_domain(domain),
                agent_id,
            )
            self._reindex(self._by_did, record.did, did, agent_id)
            record.owner_address = address
            record.domain = domain
            record.did = did
            record.description = description
            record.updated_at = tx.timestamp

            tx.emit(
                EVENT_AGENT_UPDATED,
                source=EVENT_SOURCE,
                agent_id=agent_id,
                updated_fields=tuple(updated),
                owner_address=address,
                domain=domain,
                did=did,
                description=description,
            )
            logger.info("Agent %d updated: %s", agent_id, ", ".join(updated))
            return True

    def update_description(self, sender: AddressLike, agent_id: int, description: str) -> bool:
        """Replace only the description of an agent (owner only)."""
        return self.update_agent(sender, agent_id, new_description=description)

    def link_developer_did(
        self,
        sender: AddressLike,
        agent_id: int,
        developer_address: AddressLike,
        developer_did: str,
    ) -> bool:
        """Record which developer registered the agent, replacing any prior link.

        Raises:
            AgentNotFound: If ``agent_id`` is unknown.
            UnauthorizedUpdate: If ``sender`` is not the current owner.
            InvalidAddress: If ``developer_address`` is malformed.
            InvalidDeveloperDID: If ``developer_did`` does not embed
                ``developer_address``.
        """
        with self._ledger.transaction(sender) as tx:
            record = self._require_owner(tx, agent_id)
            developer = normalize_address(developer_address)
            if not DIDValidator.validate(developer_did, developer):
                raise InvalidDeveloperDID(f"Developer DID is not bound to {developer}")

            record.developer_did = developer_did
            record.updated_at = tx.timestamp
            tx.emit(
                EVENT_AGENT_DEVELOPER_LINKED,
                source=EVENT_SOURCE,
                agent_id=agent_id,
                developer_did=developer_did,
            )
            logger.info("Agent %d linked to developer %s", agent_id, developer)
            return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, agent_id: int) -> AgentRecord:
        """Return a copy of the agent record.

        Raises:
            AgentNotFound: If ``agent_id`` is unknown.
        """
        with self._ledger.lock:
            return self._lookup(agent_id).model_copy()

    def resolve_by_domain(self, domain: str) -> AgentRecord:
        """Resolve an agent by domain, ignoring case."""
        with self._ledger.lock:
            agent_id = self._by_domain.get(normalize_domain(domain)) if domain else None
            if agent_id is None:
                raise AgentNotFound(f"No agent registered for domain {domain!r}")
            return self._agents[agent_id].model_copy()

    def resolve_by_address(self, address: AddressLike) -> AgentRecord:
        """Resolve an agent by its current owner address."""
        with self._ledger.lock:
            agent_id = self._by_address.get(normalize_address(address))
            if agent_id is None:
                raise AgentNotFound(f"No agent registered for address {address}")
            return self._agents[agent_id].model_copy()

    def resolve_by_did(self, did: str) -> AgentRecord:
        """Resolve an agent by DID.

        Raises:
            DIDNotRegistered: If no agent holds ``did``.
        """
        with self._ledger.lock:
            agent_id = self._by_did.get(did) if did else None
            if agent_id is None:
                raise DIDNotRegistered(f"DID {did!r} is not registered")
            return self._agents[agent_id].model_copy()

    def owner_of(self, agent_id: int) -> str:
        """Return the current owner address of an agent."""
        with self._ledger.lock:
            return self._lookup(agent_id).owner_address

    def get_developer_did(self, agent_id: int) -> str:
        with self._ledger.lock:
            return self._lookup(agent_id).developer_did

    def exists(self, agent_id: int) -> bool:
        with self._ledger.lock:
            return agent_id in self._agents

    def count(self) -> int:
        with self._ledger.lock:
            return len(self._agents)

    def list_agents(self) -> list[AgentRecord]:
        """Return copies of all records in id order."""
        with self._ledger.lock:
            return [self._agents[i].model_copy() for i in sorted(self._agents)]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, agent_id: int) -> AgentRecord:
        record = self._agents.get(agent_id)
        if record is None:
            raise AgentNotFound(f"Agent {agent_id} not found")
        return record

    def _require_owner(self, tx: Transaction, agent_id: int) -> AgentRecord:
        record = self._lookup(agent_id)
        if tx.sender != record.owner_address:
            raise UnauthorizedUpdate(f"{tx.sender} does not own agent {agent_id}")
        return record

    def _check_available(self, owner: str, domain: str, did: str) -> None:
        if domain and normalize_domain(domain) in self._by_domain:
            raise DomainAlreadyRegistered(f"Domain {domain!r} is already registered")
        if did:
            if not DIDValidator.validate(did, owner):
                raise DIDAddressMismatch(f"DID is not bound to {owner}")
            if did in self._by_did:
                raise DIDAlreadyRegistered("DID is already registered")
        if owner in self._by_address:
            raise AddressAlreadyRegistered(f"Address {owner} already owns an agent")

    def _insert(
        self,
        tx: Transaction,
        owner: str,
        domain: str,
        did: str,
        description: str,
    ) -> AgentRecord:
        agent_id = self._next_id
        record = AgentRecord(
            agent_id=agent_id,
            owner_address=owner,
            domain=domain,
            did=did,
            description=description,
            registered_at=tx.timestamp,
            updated_at=tx.timestamp,
        )
        self._agents[agent_id] = record
        self._by_address[owner] = agent_id
        if domain:
            self._by_domain[normalize_domain(domain)] = agent_id
        if did:
            self._by_did[did] = agent_id
        self._next_id += 1

        tx.emit(
            EVENT_AGENT_REGISTERED,
            source=EVENT_SOURCE,
            agent_id=agent_id,
            owner_address=owner,
            domain=domain,
            did=did,
        )
        logger.info("Registered agent %d for %s", agent_id, owner)
        return record

    @staticmethod
    def _reindex(index: dict[str, int], old_key: str, new_key: str, agent_id: int) -> None:
        if old_key == new_key:
            return
        if old_key:
            index.pop(old_key, None)
        if new_key:
            index[new_key] = agent_id
