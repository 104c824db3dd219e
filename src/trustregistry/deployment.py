"""
Deployment

Wires the identity, reputation and validation registries to one ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from trustregistry.config import RegistryConfig
from trustregistry.identity.registry import IdentityRegistry
from trustregistry.ledger import Ledger
from trustregistry.reputation.registry import ReputationRegistry
from trustregistry.validation.registry import ValidationRegistry

logger = logging.getLogger(__name__)


@dataclass
class Deployment:
    """The three registries sharing a ledger."""

    config: RegistryConfig
    ledger: Ledger
    identity: IdentityRegistry
    reputation: ReputationRegistry
    validation: ValidationRegistry


def deploy(
    config: Optional[RegistryConfig] = None,
    ledger: Optional[Ledger] = None,
) -> Deployment:
    """Build a deployment from configuration.

    Args:
        config: Deployment settings (defaults when omitted).
        ledger: Existing ledger to run on; a new one starts at
            ``config.genesis_time`` otherwise.
    """
    config = config or RegistryConfig()
    ledger = ledger or Ledger(genesis_time=config.genesis_time)
    identity = IdentityRegistry(
        ledger,
        config.policy.build(),
        chain_id=config.chain_id,
        name=config.registry_name,
        version=config.registry_version,
        address=config.registry_address,
        burn_nonce_on_failure=config.burn_nonce_on_failure,
    )
    logger.info(
        "Deployed registries on chain %d with %r", config.chain_id, identity.policy
    )
    return Deployment(
        config=config,
        ledger=ledger,
        identity=identity,
        reputation=ReputationRegistry(ledger, identity),
        validation=ValidationRegistry(ledger, identity),
    )
