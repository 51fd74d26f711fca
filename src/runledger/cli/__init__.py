"""CLI package for runledger."""

from runledger.cli.app import app, main

__all__ = ["app", "main"]
