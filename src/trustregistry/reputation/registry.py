"""
Reputation Registry

Lets a server agent pre-authorize a specific client agent to leave feedback.
Authorizations are keyed by immutable agent ids, issued once, and never
revoked or reissued. Scoring the feedback itself happens off-ledger.
"""

from __future__ import annotations

import hashlib
import logging

from trustregistry.address import AddressLike
from trustregistry.constants import ZERO_HASH
from trustregistry.exceptions import (
    AgentNotFound,
    FeedbackAlreadyAuthorized,
    UnauthorizedFeedback,
)
from trustregistry.identity.registry import IdentityRegistry
from trustregistry.ledger import EVENT_FEEDBACK_AUTHORIZED, Ledger, Transaction

logger = logging.getLogger(__name__)

EVENT_SOURCE = "reputation"


def derive_auth_token(tx: Transaction, client_agent_id: int, server_agent_id: int) -> bytes:
    """Derive an opaque authorization token from the pair and ledger entropy."""
    data = b"".join(
        (
            client_agent_id.to_bytes(32, "big"),
            server_agent_id.to_bytes(32, "big"),
            tx.timestamp.to_bytes(32, "big"),
            tx.seed,
        )
    )
    token = hashlib.sha256(data).digest()
    # an all-zero token would read as "absent"
    while token == ZERO_HASH:
        token = hashlib.sha256(token + data).digest()
    return token


class ReputationRegistry:
    """Feedback pre-authorizations between registered agents.

    Args:
        ledger: Ledger shared with the identity registry.
        identity: Identity registry used for existence and owner checks.

    Example:
        >>> reputation = ReputationRegistry(ledger, identity)
        >>> token = reputation.accept_feedback(server_owner, client_id, server_id)
        >>> reputation.is_authorized(client_id, server_id) == (True, token)
        True
    """

    def __init__(self, ledger: Ledger, identity: IdentityRegistry) -> None:
        self._ledger = ledger
        self._identity = identity
        self._authorizations: dict[tuple[int, int], bytes] = {}

    def accept_feedback(
        self,
        sender: AddressLike,
        client_agent_id: int,
        server_agent_id: int,
    ) -> bytes:
        """Authorize ``client_agent_id`` to leave feedback for ``server_agent_id``.

        Returns:
            The 32-byte authorization token.

        Raises:
            AgentNotFound: If either agent is unknown.
            UnauthorizedFeedback: If ``sender`` does not own the server agent.
            FeedbackAlreadyAuthorized: If the pair already holds a token.
        """
        with self._ledger.transaction(sender) as tx:
            for agent_id in (client_agent_id, server_agent_id):
                if not self._identity.exists(agent_id):
                    raise AgentNotFound(f"Agent {agent_id} not found")
            if tx.sender != self._identity.owner_of(server_agent_id):
                raise UnauthorizedFeedback(
                    f"{tx.sender} does not own server agent {server_agent_id}"
                )
            key = (client_agent_id, server_agent_id)
            if key in self._authorizations:
                raise FeedbackAlreadyAuthorized(
                    f"Feedback from {client_agent_id} to {server_agent_id} is already authorized"
                )

            token = derive_auth_token(tx, client_agent_id, server_agent_id)
            self._authorizations[key] = token
            tx.emit(
                EVENT_FEEDBACK_AUTHORIZED,
                source=EVENT_SOURCE,
                client_agent_id=client_agent_id,
                server_agent_id=server_agent_id,
                auth_token=token,
            )
            logger.info(
                "Agent %d authorized feedback from agent %d", server_agent_id, client_agent_id
            )
            return token

    def is_authorized(self, client_agent_id: int, server_agent_id: int) -> tuple[bool, bytes]:
        """Return whether the pair is authorized, with its token."""
        token = self.get_auth_id(client_agent_id, server_agent_id)
        return token != ZERO_HASH, token

    def get_auth_id(self, client_agent_id: int, server_agent_id: int) -> bytes:
        """Return the pair's token, or ``ZERO_HASH`` when absent."""
        with self._ledger.lock:
            return self._authorizations.get((client_agent_id, server_agent_id), ZERO_HASH)

    def __len__(self) -> int:
        return len(self._authorizations)
