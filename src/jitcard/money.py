"""Tagged amount types.

Marqeta's authorization simulation takes an integer number of cents (sent as
a string) while the clearing simulation takes a decimal dollar amount.
Keeping the two units as distinct types makes every conversion explicit.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

_CENT = Decimal("0.01")


@dataclass(frozen=True, order=True)
class Cents:
    """Whole number of cents."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Cents requires an int, got {type(self.value).__name__}")

    def to_dollars(self) -> "Dollars":
        return Dollars(Decimal(self.value) / 100)

    def as_authorization_amount(self) -> str:
        """Authorization simulations expect the cents value as a string."""
        return str(self.value)

    def __str__(self) -> str:
        return f"{self.value}c"


@dataclass(frozen=True, order=True)
class Dollars:
    """Decimal dollar amount."""

    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            raise TypeError(f"Dollars requires a Decimal, got {type(self.value).__name__}")

    @classmethod
    def parse(cls, raw: Union[str, int, float, Decimal]) -> "Dollars":
        """Build from user input; floats go through str() to avoid binary noise."""
        if isinstance(raw, bool):
            raise ValueError("amount must be a number")
        try:
            value = raw if isinstance(raw, Decimal) else Decimal(str(raw))
        except InvalidOperation as exc:
            raise ValueError(f"amount is not a number: {raw!r}") from exc
        if not value.is_finite():
            raise ValueError("amount must be finite")
        return cls(value)

    def to_cents(self) -> Cents:
        return Cents(int((self.value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

    def as_clearing_amount(self) -> Union[int, float]:
        """JSON number for the clearing simulation (10 for $10.00, 10.5 for $10.50)."""
        rounded = self.value.quantize(_CENT, rounding=ROUND_HALF_UP)
        if rounded == rounded.to_integral_value():
            return int(rounded)
        return float(rounded)

    def __str__(self) -> str:
        return f"${self.value.quantize(_CENT, rounding=ROUND_HALF_UP)}"
