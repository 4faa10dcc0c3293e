"""HTTP surface for the JIT card demo."""

from .main import create_app

__all__ = ["create_app"]
