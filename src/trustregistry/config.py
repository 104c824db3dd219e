"""
Registry Configuration

Deployment settings for the registries, loadable from and savable to YAML.
"""

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from trustregistry.address import normalize_address
from trustregistry.constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_REGISTRY_ADDRESS,
    DEFAULT_REGISTRY_NAME,
    DEFAULT_REGISTRY_VERSION,
)
from trustregistry.exceptions import InvalidAddress
from trustregistry.identity.policy import POLICY_TYPES, FeePolicy, RegistrationPolicy

PolicyKind = Literal["open", "require_domain", "require_did", "require_identifier", "fee"]


class PolicyConfig(BaseModel):
    """Which registration policy a deployment enforces."""

    kind: PolicyKind = Field(default="open", description="Registration policy type")
    fee: int = Field(default=0, ge=0, description="Fee burned per registration (kind=fee)")
    identifiers: Literal["open", "require_domain", "require_did", "require_identifier"] = Field(
        default="open", description="Identifier requirement applied by the fee policy"
    )

    def build(self) -> RegistrationPolicy:
        """Instantiate the configured policy."""
        if self.kind == "fee":
            return FeePolicy(fee=self.fee, identifiers=POLICY_TYPES[self.identifiers]())
        return POLICY_TYPES[self.kind]()


class RegistryConfig(BaseModel):
    """Settings shared by a deployment of the three registries."""

    chain_id: int = Field(default=DEFAULT_CHAIN_ID, ge=0, description="Chain id for consent signing")
    registry_name: str = Field(default=DEFAULT_REGISTRY_NAME, description="Consent signing domain name")
    registry_version: str = Field(default=DEFAULT_REGISTRY_VERSION, description="Consent signing domain version")
    registry_address: str = Field(default=DEFAULT_REGISTRY_ADDRESS, description="Identity registry address")
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    burn_nonce_on_failure: bool = Field(
        default=True,
        description="Consume a consent nonce once the expiry check passes, even if the call fails",
    )
    genesis_time: int = Field(default=0, ge=0, description="Initial ledger clock value")
    description: Optional[str] = Field(None, description="Free-form deployment description")

    @field_validator("registry_address")
    @classmethod
    def _normalize_registry_address(cls, value: str) -> str:
        try:
            return normalize_address(value)
        except InvalidAddress as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RegistryConfig":
        """Load a RegistryConfig from a YAML file."""
        path = Path(path)
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        """Save this RegistryConfig to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
