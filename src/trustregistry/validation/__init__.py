"""
Validation Registry

Time-bounded validation requests and scored responses keyed by content hash.
"""

from .registry import (
    RequestState,
    ValidationRegistry,
    ValidationRequest,
    check_data_hash,
)

__all__ = [
    "RequestState",
    "ValidationRegistry",
    "ValidationRequest",
    "check_data_hash",
]
