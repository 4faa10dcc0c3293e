"""CLI commands."""

from . import cards, payments

__all__ = ["cards", "payments"]
