"""
Validation Registry

Lets anyone ask a validator agent to score a server agent's work, identified
by a content hash. Each hash holds at most one request at a time:

- absent     no request occupies the hash
- pending    requested, not responded, inside the expiration window
- responded  a score has been recorded
- expired    the window passed; the slot may be claimed by a new request

Re-requesting inside the window only re-emits the request event. Once the
window has passed, a new request overwrites the slot and discards the
previous occupant's assignment and response.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, Field

from trustregistry.address import AddressLike
from trustregistry.constants import EXPIRATION_WINDOW, HASH_LENGTH, SCORE_MAX, SCORE_MIN, ZERO_HASH
from trustregistry.exceptions import (
    AgentNotFound,
    InvalidDataHash,
    InvalidResponse,
    RequestExpired,
    UnauthorizedValidator,
    ValidationAlreadyResponded,
    ValidationRequestNotFound,
)
from trustregistry.identity.registry import IdentityRegistry
from trustregistry.ledger import EVENT_VALIDATION_REQUESTED, EVENT_VALIDATION_RESPONDED, Ledger

logger = logging.getLogger(__name__)

EVENT_SOURCE = "validation"


class RequestState(str, Enum):
    """Lifecycle state of a data hash slot."""

    absent = "absent"
    pending = "pending"
    responded = "responded"
    expired = "expired"


class ValidationRequest(BaseModel):
    """A validation request occupying a data hash slot."""

    data_hash: bytes
    validator_agent_id: int = Field(..., ge=1)
    server_agent_id: int = Field(..., ge=1)
    timestamp: int = Field(..., ge=0)
    responded: bool = False

    def expires_at(self) -> int:
        """Last ledger time at which a response is still accepted."""
        return self.timestamp + EXPIRATION_WINDOW

    def is_expired(self, now: int) -> bool:
        return now > self.expires_at()


def check_data_hash(data_hash: bytes) -> bytes:
    """Validate that ``data_hash`` is a non-zero 32-byte digest."""
    if not isinstance(data_hash, (bytes, bytearray)) or len(data_hash) != HASH_LENGTH:
        raise InvalidDataHash(f"Data hash must be {HASH_LENGTH} bytes")
    data_hash = bytes(data_hash)
    if data_hash == ZERO_HASH:
        raise InvalidDataHash("Data hash must be non-zero")
    return data_hash


class ValidationRegistry:
    """Time-bounded validation requests and responses.

    Args:
        ledger: Ledger shared with the identity registry.
        identity: Identity registry used for existence and owner checks.
    """

    def __init__(self, ledger: Ledger, identity: IdentityRegistry) -> None:
        self._ledger = ledger
        self._identity = identity
        self._requests: dict[bytes, ValidationRequest] = {}
        self._responses: dict[bytes, int] = {}

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def request_validation(
        self,
        sender: AddressLike,
        validator_agent_id: int,
        server_agent_id: int,
        data_hash: bytes,
    ) -> None:
        """Ask ``validator_agent_id`` to score ``server_agent_id``'s work.

        Any caller may request. Inside the window of an existing request this
        only re-emits the request event for the stored assignment.

        Raises:
            InvalidDataHash: If ``data_hash`` is zero or not 32 bytes.
            AgentNotFound: If either agent is unknown.
        """
        with self._ledger.transaction(sender) as tx:
            data_hash = check_data_hash(data_hash)
            for agent_id in (validator_agent_id, server_agent_id):
                if not self._identity.exists(agent_id):
                    raise AgentNotFound(f"Agent {agent_id} not found")

            existing = self._requests.get(data_hash)
            if existing is not None and not existing.is_expired(tx.timestamp):
                tx.emit(
                    EVENT_VALIDATION_REQUESTED,
                    source=EVENT_SOURCE,
                    validator_agent_id=existing.validator_agent_id,
                    server_agent_id=existing.server_agent_id,
                    data_hash=data_hash,
                )
                logger.debug("Re-emitted open validation request %s", data_hash.hex())
                return

            self._requests[data_hash] = ValidationRequest(
                data_hash=data_hash,
                validator_agent_id=validator_agent_id,
                server_agent_id=server_agent_id,
                timestamp=tx.timestamp,
            )
            self._responses.pop(data_hash, None)
            tx.emit(
                EVENT_VALIDATION_REQUESTED,
                source=EVENT_SOURCE,
                validator_agent_id=validator_agent_id,
                server_agent_id=server_agent_id,
                data_hash=data_hash,
            )
            logger.info(
                "Validation of %s requested from agent %d for agent %d",
                data_hash.hex(),
                validator_agent_id,
                server_agent_id,
            )

    def submit_response(self, sender: AddressLike, data_hash: bytes, score: int) -> None:
        """Record the designated validator's score for a pending request.

        Raises:
            InvalidResponse: If ``score`` is outside ``[0, 100]``.
            ValidationRequestNotFound: If no request occupies ``data_hash``.
            RequestExpired: If the request's window has passed.
            ValidationAlreadyResponded: If a score was already recorded.
            UnauthorizedValidator: If ``sender`` does not currently own the
                validator agent.
        """
        with self._ledger.transaction(sender) as tx:
            if (
                isinstance(score, bool)
                or not isinstance(score, int)
                or not SCORE_MIN <= score <= SCORE_MAX
            ):
                raise InvalidResponse(f"Score must be within [{SCORE_MIN}, {SCORE_MAX}]")
            request = self._requests.get(bytes(data_hash))
            if request is None:
                raise ValidationRequestNotFound(f"No validation request for {bytes(data_hash).hex()}")
            if request.is_expired(tx.timestamp):
                raise RequestExpired(
                    f"Request expired at {request.expires_at()} (now {tx.timestamp})"
                )
            if request.responded:
                raise ValidationAlreadyResponded("Validation already responded")
            if tx.sender != self._identity.owner_of(request.validator_agent_id):
                raise UnauthorizedValidator(
                    f"{tx.sender} does not own validator agent {request.validator_agent_id}"
                )

            request.responded = True
            self._responses[request.data_hash] = score
            tx.emit(
                EVENT_VALIDATION_RESPONDED,
                source=EVENT_SOURCE,
                validator_agent_id=request.validator_agent_id,
                server_agent_id=request.server_agent_id,
                data_hash=request.data_hash,
                score=score,
            )
            logger.info(
                "Agent %d scored %s at %d",
                request.validator_agent_id,
                request.data_hash.hex(),
                score,
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_request(self, data_hash: bytes) -> ValidationRequest:
        """Return a copy of the request occupying ``data_hash``.

        Raises:
            ValidationRequestNotFound: If the slot is empty.
        """
        with self._ledger.lock:
            request = self._requests.get(bytes(data_hash))
            if request is None:
                raise ValidationRequestNotFound(f"No validation request for {bytes(data_hash).hex()}")
            return request.model_copy()

    def is_pending(self, data_hash: bytes) -> tuple[bool, bool]:
        """Return ``(exists, pending)`` for ``data_hash``."""
        state = self.state(data_hash)
        return state is not RequestState.absent, state is RequestState.pending

    def get_response(self, data_hash: bytes) -> tuple[bool, int]:
        """Return ``(has_response, score)``; the score is 0 when absent."""
        with self._ledger.lock:
            score = self._responses.get(bytes(data_hash))
            return (score is not None, score or 0)

    def state(self, data_hash: bytes) -> RequestState:
        """Return the lifecycle state of ``data_hash`` at the current time."""
        with self._ledger.lock:
            request = self._requests.get(bytes(data_hash))
            if request is None:
                return RequestState.absent
            if request.responded:
                return RequestState.responded
            if request.is_expired(self._ledger.now):
                return RequestState.expired
            return RequestState.pending

    @staticmethod
    def expiration_window() -> int:
        return EXPIRATION_WINDOW
