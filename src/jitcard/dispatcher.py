"""Action-keyed command boundary in front of the orchestrators.

Commands arrive as loosely-typed JSON (``{"action": "simulate", ...}``) and
are validated into a closed union of request models before any upstream
call is made.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from .client import MarqetaClient
from .config import JitCardSettings
from .exceptions import CommandValidationError, ConnectivityError, JitCardError, SetupFailedError
from .money import Cents, Dollars
from .pins import PinVerifier, check_pin_format
from .provisioning import CONNECTIVITY_STEP, SetupFailure, SetupOrchestrator, SetupSuccess
from .registry import ResourceRegistry
from .transactions import PaymentResult, TransactionOrchestrator

logger = logging.getLogger(__name__)

_PAN_PATTERN = re.compile(r"^\d{13,19}$")


# Request Models
class _Command(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _DollarAmount(_Command):
    """Dollar amounts must still be at least one cent after rounding."""

    @field_validator("amount", check_fields=False)
    @classmethod
    def at_least_one_cent(cls, v: Decimal) -> Decimal:
        if Dollars(v).to_cents().value < 1:
            raise ValueError("amount rounds to zero cents")
        return v


class SetupCommand(_Command):
    action: Literal["setup"]


class SimulateCommand(_DollarAmount):
    action: Literal["simulate"]
    card_token: str = Field(alias="cardToken", min_length=1)
    amount: Decimal = Field(gt=0, description="Amount in dollars")
    webhook_endpoint: Optional[str] = Field(default=None, alias="webhookEndpoint")


class ClearCommand(_Command):
    action: Literal["clear"]
    transaction_token: str = Field(alias="transactionToken", min_length=1)
    amount: int = Field(gt=0, description="Authorized amount in cents")


class BalanceCommand(_Command):
    action: Literal["balance"]
    user_token: str = Field(alias="userToken", min_length=1)


Command = Annotated[
    Union[SetupCommand, SimulateCommand, ClearCommand, BalanceCommand],
    Field(discriminator="action"),
]


class CardPaymentRequest(_DollarAmount):
    """One-click payment addressed by card token."""
    card_token: str = Field(alias="cardToken", min_length=1)
    amount: Decimal = Field(gt=0)
    auto_clear: bool = Field(default=True, alias="autoClear")


class PanPaymentRequest(_DollarAmount):
    """Payment addressed by the raw card number."""
    pan: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    auto_clear: bool = Field(default=True, alias="autoClear")

    @field_validator("pan")
    @classmethod
    def normalize_pan(cls, v: str) -> str:
        v = re.sub(r"\s", "", v)
        if not _PAN_PATTERN.match(v):
            raise ValueError("Invalid PAN format. Must be 13-19 digits")
        return v


class PinPaymentRequest(_DollarAmount):
    """PIN-gated payment addressed by PAN or card token."""
    pan: Optional[str] = None
    card_token: Optional[str] = Field(default=None, alias="cardToken")
    pin: str
    amount: Decimal = Field(gt=0)
    auto_clear: bool = Field(default=True, alias="autoClear")

    @field_validator("pan")
    @classmethod
    def normalize_pan(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = re.sub(r"\s", "", v)
        if not _PAN_PATTERN.match(v):
            raise ValueError("Invalid PAN format. Must be 13-19 digits")
        return v

    @model_validator(mode="after")
    def require_card_reference(self) -> "PinPaymentRequest":
        if not self.pan and not self.card_token:
            raise ValueError("pan or cardToken is required")
        return self


_command_adapter: TypeAdapter[Any] = TypeAdapter(Command)

_FIELD_MESSAGES = {
    "amount": "Valid amount is required",
}


def _to_validation_error(exc: ValidationError) -> CommandValidationError:
    """Map the first pydantic error to a CommandValidationError naming the field."""
    err = exc.errors()[0]
    kind = err.get("type", "")
    if kind == "union_tag_not_found":
        return CommandValidationError("action is required", field="action")
    if kind == "union_tag_invalid":
        return CommandValidationError("Invalid action", field="action")

    # Discriminated unions prefix the loc with the tag value.
    loc = [str(part) for part in err.get("loc", ())]
    field = loc[-1] if loc else None
    if field in _FIELD_MESSAGES:
        return CommandValidationError(_FIELD_MESSAGES[field], field=field)
    if kind == "missing":
        return CommandValidationError(f"{field} is required", field=field)
    cause = (err.get("ctx") or {}).get("error")
    if cause is not None:
        return CommandValidationError(str(cause), field=field)
    return CommandValidationError(f"Invalid {field}: {err.get('msg', 'invalid value')}", field=field)


def parse_command(payload: Any) -> Union[SetupCommand, SimulateCommand, ClearCommand, BalanceCommand]:
    if not isinstance(payload, dict):
        raise CommandValidationError("Request body must be a JSON object")
    try:
        return _command_adapter.validate_python(payload)
    except ValidationError as exc:
        raise _to_validation_error(exc) from exc


def _parse(model: type[BaseModel], payload: Any) -> Any:
    if not isinstance(payload, dict):
        raise CommandValidationError("Request body must be a JSON object")
    if model is PinPaymentRequest and isinstance(payload.get("pin"), str):
        # PIN shape is checked before anything else about the request.
        check_pin_format(payload["pin"])
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise _to_validation_error(exc) from exc


def serialize_setup(result: SetupSuccess, balance_limit_cents: int) -> dict[str, Any]:
    """Shape a successful setup for the caller; raw upstream payloads stay internal."""
    return {
        "fundingSource": {
            "token": result.funding_source.token,
            "name": result.funding_source.name,
        },
        "cardProduct": {
            "token": result.card_product.token,
            "name": result.card_product.name,
        },
        "user": {
            "token": result.user.token,
            "name": result.user.name,
            "balanceLimit": balance_limit_cents,
        },
        "card": {
            "token": result.card.token,
            "pan": result.card.pan,
            "cvv": result.card.cvv,
            "expiration": result.card.expiration,
            "state": result.card.state,
        },
        "velocityControl": {
            "token": result.velocity_control.token,
            "amountLimit": balance_limit_cents,
            "window": result.velocity_control.window,
        },
    }


class CommandDispatcher:
    """Routes validated commands to the setup and transaction orchestrators."""

    def __init__(
        self,
        setup: SetupOrchestrator,
        transactions: TransactionOrchestrator,
        registry: ResourceRegistry,
        pins: PinVerifier,
        settings: JitCardSettings,
    ) -> None:
        self.setup = setup
        self.transactions = transactions
        self.registry = registry
        self.pins = pins
        self._settings = settings

    @classmethod
    def build(
        cls,
        client: MarqetaClient,
        settings: JitCardSettings,
        registry: Optional[ResourceRegistry] = None,
    ) -> "CommandDispatcher":
        registry = registry or ResourceRegistry()
        return cls(
            setup=SetupOrchestrator(client, registry, settings),
            transactions=TransactionOrchestrator(client, settings),
            registry=registry,
            pins=PinVerifier(settings.demo_pin, settings.card_pins),
            settings=settings,
        )

    async def dispatch(self, payload: Any) -> dict[str, Any]:
        """Validate and run one action. Failures raise JitCardError subclasses."""
        command = parse_command(payload)
        logger.info("Dispatching command", extra={"action": command.action})

        if isinstance(command, SetupCommand):
            return await self._run_setup()
        if isinstance(command, SimulateCommand):
            result = await self.transactions.simulate(
                command.card_token,
                Dollars(command.amount),
                command.webhook_endpoint,
            )
            return {
                "success": True,
                "data": result.raw,
                "message": "Transaction simulated successfully",
            }
        if isinstance(command, ClearCommand):
            cleared = await self.transactions.clear(command.transaction_token, Cents(command.amount))
            return {
                "success": True,
                "data": cleared.cleared_payload(),
                "message": "Transaction cleared successfully",
            }
        return await self._balance(command.user_token)

    async def _run_setup(self) -> dict[str, Any]:
        result = await self.setup.run_setup()
        if isinstance(result, SetupFailure):
            if result.step == CONNECTIVITY_STEP:
                raise ConnectivityError(result.reason)
            raise SetupFailedError(result.reason, details=result.details)
        response: dict[str, Any] = {
            "success": True,
            "data": serialize_setup(result, self._settings.balance_limit_cents),
            "message": "JIT Funding setup completed successfully",
        }
        if result.fallbacks:
            response["warning"] = "Using sandbox default funding source"
        return response

    async def _balance(self, user_token: str) -> dict[str, Any]:
        try:
            balance = await self.transactions.get_balance(user_token)
        except JitCardError as exc:
            logger.warning("Balance check failed (non-critical): %s", exc.message)
            return {
                "success": True,
                "data": {"gpa": None},
                "warning": "Balance information not available",
            }
        return {"success": True, "data": balance}

    # ------------------------------------------------------------------
    # Payment paths
    # ------------------------------------------------------------------

    async def pay_with_card(self, payload: Any) -> dict[str, Any]:
        request: CardPaymentRequest = _parse(CardPaymentRequest, payload)
        result = await self.transactions.authorize_and_maybe_clear(
            request.card_token,
            Dollars(request.amount),
            auto_clear=request.auto_clear,
        )
        return _payment_response(result)

    async def pay_with_pan(self, payload: Any) -> dict[str, Any]:
        request: PanPaymentRequest = _parse(PanPaymentRequest, payload)
        card = self.registry.find_card_by_pan(request.pan)
        result = await self.transactions.authorize_and_maybe_clear(
            card.token,
            Dollars(request.amount),
            auto_clear=request.auto_clear,
        )
        return _payment_response(result, card_last4=card.last_four)

    async def pay_with_pin(self, payload: Any) -> dict[str, Any]:
        request: PinPaymentRequest = _parse(PinPaymentRequest, payload)
        registered = self.registry.card
        self.pins.verify(
            request.pin,
            pan=request.pan,
            registered_pan=registered.pan if registered else None,
        )

        card = self.registry.find_card_by_pan(request.pan) if request.pan else None
        result = await self.transactions.authorize_and_maybe_clear(
            card.token if card else request.card_token,
            Dollars(request.amount),
            auto_clear=request.auto_clear,
        )
        return _payment_response(result, card_last4=card.last_four if card else None)


def _payment_response(result: PaymentResult, card_last4: Optional[str] = None) -> dict[str, Any]:
    data = result.to_payload()
    if card_last4:
        data["cardLast4"] = card_last4
    return {"success": True, "data": data}
