"""Shared fixtures for the trust registry tests."""

import pytest

from trustregistry import Deployment, deploy


def make_address(n: int) -> str:
    """Deterministic non-zero test address."""
    return "0x" + f"{n:040x}"


@pytest.fixture
def addr():
    """Factory for deterministic test addresses."""
    return make_address


@pytest.fixture
def deployment() -> Deployment:
    return deploy()


@pytest.fixture
def ledger(deployment):
    return deployment.ledger


@pytest.fixture
def identity(deployment):
    return deployment.identity


@pytest.fixture
def reputation(deployment):
    return deployment.reputation


@pytest.fixture
def validation(deployment):
    return deployment.validation
