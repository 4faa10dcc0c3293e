"""Simulated authorization and clearing against the card-issuing platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .client import MarqetaClient
from .config import JitCardSettings
from .exceptions import JitCardError
from .models import Transaction, TransactionState
from .money import Cents, Dollars

logger = logging.getLogger(__name__)

AUTHORIZATION_PATH = "/simulations/cardtransactions/authorization"
CLEARING_PATH = "/simulations/cardtransactions/authorization.clearing"
AUTO_CLEAR_WARNING = "Transaction authorized but auto-clear failed"

TEST_CARD_ACCEPTOR = {
    "mid": "1234567890",
    "name": "Test Merchant",
    "street_address": "123 Main St",
    "city": "San Francisco",
    "state": "CA",
    "zip": "94105",
    "country_code": "USA",
}


@dataclass(frozen=True)
class SimulationResult:
    """Raw simulation response plus the parsed transaction."""

    raw: dict[str, Any]
    transaction: Optional[Transaction] = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "SimulationResult":
        txn_payload = payload.get("transaction")
        transaction = None
        if isinstance(txn_payload, dict):
            transaction = Transaction.from_api(txn_payload, funding_order=payload.get("gpa_order"))
        return cls(raw=payload, transaction=transaction)

    @property
    def funding_order(self) -> Optional[dict[str, Any]]:
        """Funding order attached when JIT funding fired."""
        return self.raw.get("gpa_order")

    @property
    def transaction_token(self) -> Optional[str]:
        if self.transaction and self.transaction.token:
            return self.transaction.token
        return None

    def cleared_payload(self) -> dict[str, Any]:
        """Caller-facing payload once clearing succeeded; the state reads CLEARED."""
        return {
            "transaction": {
                **(self.raw.get("transaction") or {}),
                "state": TransactionState.CLEARED.value,
            },
            "gpa_order": self.funding_order,
            "cleared": True,
        }


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of authorize-and-maybe-clear."""

    authorization: SimulationResult
    cleared: bool = False
    warning: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        if self.cleared:
            return self.authorization.cleared_payload()
        payload = dict(self.authorization.raw)
        if self.warning:
            payload["warning"] = self.warning
        return payload


class TransactionOrchestrator:
    """Runs authorization and clearing simulations for a card."""

    def __init__(self, client: MarqetaClient, settings: JitCardSettings) -> None:
        self._client = client
        self._settings = settings

    async def simulate(
        self,
        card_token: str,
        amount: Dollars,
        webhook_endpoint: Optional[str] = None,
    ) -> SimulationResult:
        """
        Simulate an authorization.

        Args:
            card_token: Token of the card to charge
            amount: Amount in dollars; sent upstream as a cents string
            webhook_endpoint: Optional URL for transaction event delivery

        Returns:
            SimulationResult with the transaction and any funding order
        """
        body: dict[str, Any] = {
            "amount": amount.to_cents().as_authorization_amount(),
            "card_token": card_token,
            "card_acceptor": dict(TEST_CARD_ACCEPTOR),
            "network": "VISA",
        }
        if webhook_endpoint:
            body["webhook"] = {
                "endpoint": webhook_endpoint,
                "username": self._settings.webhook_username,
                "password": self._settings.webhook_password,
            }
        response = await self._client.send("POST", AUTHORIZATION_PATH, body)
        result = SimulationResult.from_api(response.data)
        logger.info(
            "Authorization simulated",
            extra={"card_token": card_token, "transaction_token": result.transaction_token},
        )
        return result

    async def clear(self, transaction_token: str, amount: Cents) -> SimulationResult:
        """
        Simulate clearing of a previous authorization.

        The clearing endpoint takes dollars, unlike authorization.
        """
        body = {
            "preceding_related_transaction_token": transaction_token,
            "amount": amount.to_dollars().as_clearing_amount(),
        }
        response = await self._client.send("POST", CLEARING_PATH, body)
        logger.info("Transaction cleared", extra={"transaction_token": transaction_token})
        return SimulationResult.from_api(response.data)

    async def authorize_and_maybe_clear(
        self,
        card_token: str,
        amount: Dollars,
        auto_clear: bool = True,
        webhook_endpoint: Optional[str] = None,
    ) -> PaymentResult:
        """Authorize, then clear when requested. A failed clear is reported as a warning."""
        authorization = await self.simulate(card_token, amount, webhook_endpoint)

        token = authorization.transaction_token
        if not auto_clear or token is None:
            return PaymentResult(authorization=authorization)

        try:
            await self.clear(token, amount.to_cents())
        except JitCardError as exc:
            logger.error(
                "Auto-clear failed, returning authorized transaction: %s",
                exc.message,
                extra={"transaction_token": token},
            )
            return PaymentResult(authorization=authorization, warning=AUTO_CLEAR_WARNING)

        return PaymentResult(authorization=authorization, cleared=True)

    async def get_balance(self, user_token: str) -> dict[str, Any]:
        """Cardholder record, including the GPA balance when present."""
        response = await self._client.send("GET", f"/users/{user_token}")
        return response.data
