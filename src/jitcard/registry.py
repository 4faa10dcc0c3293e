"""In-memory registry of the resources created by the latest setup run."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from .exceptions import CardNotFoundError
from .models import Card, CardholderUser, CardProduct, FundingSource, VelocityControl


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of the five registry slots."""

    funding_source: Optional[FundingSource] = None
    card_product: Optional[CardProduct] = None
    user: Optional[CardholderUser] = None
    card: Optional[Card] = None
    velocity_control: Optional[VelocityControl] = None

    @property
    def is_complete(self) -> bool:
        return all(getattr(self, f.name) is not None for f in fields(self))


RESOURCE_KINDS = tuple(f.name for f in fields(RegistrySnapshot))


class ResourceRegistry:
    """
    Holds at most one of each resource kind.

    Owned by the caller (the API app state or a CLI invocation) and passed to
    the orchestrators. Setup runs take ``writer_lock`` so that only one run
    writes at a time; readers do not lock.
    """

    def __init__(self) -> None:
        self._snapshot = RegistrySnapshot()
        self.writer_lock = asyncio.Lock()

    def set(self, kind: str, value: Any) -> None:
        if kind not in RESOURCE_KINDS:
            raise KeyError(f"unknown resource kind: {kind}")
        self._snapshot = replace(self._snapshot, **{kind: value})

    def get(self, kind: str) -> Any:
        if kind not in RESOURCE_KINDS:
            raise KeyError(f"unknown resource kind: {kind}")
        return getattr(self._snapshot, kind)

    def get_all(self) -> RegistrySnapshot:
        return self._snapshot

    def commit(self, snapshot: RegistrySnapshot) -> None:
        """Replace every slot at once."""
        self._snapshot = snapshot

    def clear(self) -> None:
        self._snapshot = RegistrySnapshot()

    @property
    def card(self) -> Optional[Card]:
        return self._snapshot.card

    def find_card_by_pan(self, pan: str) -> Card:
        """Exact match against the single held card."""
        card = self._snapshot.card
        if card is None or not card.pan or card.pan != pan:
            raise CardNotFoundError()
        return card
