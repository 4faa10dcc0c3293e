"""PIN checks for the PIN-gated payment path."""

from __future__ import annotations

import hmac
from typing import Mapping, Optional

from .exceptions import CommandValidationError, InvalidPinError

PIN_LENGTH = 6


def check_pin_format(pin: str) -> None:
    """Reject anything that is not exactly six digits."""
    if not isinstance(pin, str) or len(pin) != PIN_LENGTH:
        raise CommandValidationError("Invalid PIN length", field="pin")
    if not pin.isdigit():
        raise CommandValidationError("PIN must contain only digits", field="pin")


class PinVerifier:
    """
    Validates PINs against a static PAN->PIN table, or a single demo PIN.

    The demo PIN applies to payments addressed by card token and to the card
    currently held in the registry when its PAN has no table entry.
    """

    def __init__(self, demo_pin: str, card_pins: Optional[Mapping[str, str]] = None) -> None:
        self._demo_pin = demo_pin
        self._card_pins = dict(card_pins or {})

    def expected_pin(self, pan: Optional[str] = None, registered_pan: Optional[str] = None) -> Optional[str]:
        if pan is None:
            return self._demo_pin
        if pan in self._card_pins:
            return self._card_pins[pan]
        if registered_pan and pan == registered_pan:
            return self._demo_pin
        return None

    def verify(
        self,
        pin: str,
        pan: Optional[str] = None,
        registered_pan: Optional[str] = None,
    ) -> None:
        check_pin_format(pin)
        expected = self.expected_pin(pan, registered_pan)
        if expected is None or not hmac.compare_digest(expected.encode(), pin.encode()):
            raise InvalidPinError()
