"""
Reputation Registry

Server-issued, issue-once feedback authorizations between agents.
"""

from .registry import ReputationRegistry, derive_auth_token

__all__ = [
    "ReputationRegistry",
    "derive_auth_token",
]
