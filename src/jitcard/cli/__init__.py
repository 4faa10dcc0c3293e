"""Command-line interface for the JIT card demo."""

from .main import cli, main

__all__ = ["cli", "main"]
