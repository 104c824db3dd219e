"""Command line interface for the trust registries."""

from .main import app, main

__all__ = ["app", "main"]
