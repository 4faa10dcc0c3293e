"""Data models for resources created on the card-issuing platform."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

DEFAULT_FUNDING_SOURCE_TOKEN = "sandbox_program_funding"
DEFAULT_FUNDING_SOURCE_NAME = "Default Sandbox Program Funding"


class TransactionState(str, Enum):
    """Marqeta transaction state."""
    PENDING = "PENDING"
    CLEARED = "CLEARED"
    COMPLETION = "COMPLETION"
    DECLINED = "DECLINED"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "TransactionState":
        try:
            return cls(str(value or "").upper())
        except ValueError:
            return cls.UNKNOWN


def _int_or_none(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class FundingSource:
    """Program funding source the card product draws from."""

    token: str
    name: str = ""
    is_fallback: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "FundingSource":
        return cls(token=payload.get("token", ""), name=payload.get("name", ""), raw=payload)

    @classmethod
    def sandbox_default(cls) -> "FundingSource":
        return cls(
            token=DEFAULT_FUNDING_SOURCE_TOKEN,
            name=DEFAULT_FUNDING_SOURCE_NAME,
            is_fallback=True,
        )


@dataclass(frozen=True)
class CardProduct:
    """Card product configured for JIT funding."""

    token: str
    name: str = ""
    funding_source_token: str = ""
    jit_funding_config: dict[str, Any] = field(default_factory=dict, compare=False)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "CardProduct":
        jit = (payload.get("config") or {}).get("jit_funding") or {}
        program = jit.get("program_funding_source") or {}
        return cls(
            token=payload.get("token", ""),
            name=payload.get("name", ""),
            funding_source_token=program.get("funding_source_token", ""),
            jit_funding_config=jit,
            raw=payload,
        )


@dataclass(frozen=True)
class CardholderUser:
    """Cardholder the virtual card is issued to."""

    token: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    balance_limit_cents: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "CardholderUser":
        metadata = payload.get("metadata") or {}
        return cls(
            token=payload.get("token", ""),
            first_name=payload.get("first_name", ""),
            last_name=payload.get("last_name", ""),
            email=payload.get("email", ""),
            balance_limit_cents=_int_or_none(metadata.get("balance_limit")),
            raw=payload,
        )


@dataclass(frozen=True)
class Card:
    """Virtual card, including the raw PAN and CVV returned at creation."""

    token: str
    pan: str = field(default="", repr=False)
    cvv: str = field(default="", repr=False)
    expiration: str = ""
    state: str = ""
    user_token: str = ""
    card_product_token: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def last_four(self) -> str:
        return self.pan[-4:] if self.pan else ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Card":
        return cls(
            token=payload.get("token", ""),
            pan=payload.get("pan", ""),
            cvv=payload.get("cvv_number", ""),
            expiration=payload.get("expiration", ""),
            state=payload.get("state", ""),
            user_token=payload.get("user_token", ""),
            card_product_token=payload.get("card_product_token", ""),
            raw=payload,
        )


@dataclass(frozen=True)
class VelocityControl:
    """Spend ceiling scoped to a cardholder over a time window."""

    token: str
    amount_limit_cents: Optional[int] = None
    currency: str = "USD"
    window: str = "DAY"
    user_token: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "VelocityControl":
        association = payload.get("association") or {}
        return cls(
            token=payload.get("token", ""),
            amount_limit_cents=_int_or_none(payload.get("amount_limit")),
            currency=payload.get("currency_code", "USD"),
            window=payload.get("velocity_window", "DAY"),
            user_token=association.get("user_token", ""),
            raw=payload,
        )


@dataclass(frozen=True)
class Transaction:
    """Simulated card transaction. Never stored in the registry."""

    token: str
    state: TransactionState = TransactionState.UNKNOWN
    amount: Optional[float] = None
    response_code: Optional[str] = None
    funding_order: Optional[dict[str, Any]] = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_api(
        cls,
        payload: dict[str, Any],
        funding_order: Optional[dict[str, Any]] = None,
    ) -> "Transaction":
        response = payload.get("response") or {}
        return cls(
            token=payload.get("token", ""),
            state=TransactionState.parse(payload.get("state")),
            amount=payload.get("amount"),
            response_code=response.get("code"),
            funding_order=funding_order,
            raw=payload,
        )
