"""Command-line tools for contract_core (`contract-core` / `python -m contract_core`)."""

from .main import app, main

__all__ = ["app", "main"]
