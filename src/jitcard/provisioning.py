"""Five-step JIT funding setup against the card-issuing platform.

Steps run strictly in order because each consumes tokens produced by the
previous ones:

    funding source -> card product -> user -> card -> velocity control

Each step carries a failure policy. Only the funding source falls back (to
the sandbox program funding source); every other failure aborts the run.
Nothing is written to the registry unless all five steps succeed, and
resources already created upstream are not rolled back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Union

from .client import MarqetaClient
from .config import JitCardSettings
from .exceptions import JitCardError, UpstreamError
from .models import Card, CardholderUser, CardProduct, FundingSource, VelocityControl
from .registry import RegistrySnapshot, ResourceRegistry
from .tokens import generate_token, token_suffix

logger = logging.getLogger(__name__)

CONNECTIVITY_STEP = "connectivity"
CONNECTIVITY_FAILURE_REASON = (
    "cannot reach upstream platform. Please check your Marqeta API credentials."
)
GENERIC_FAILURE_REASON = "JIT funding setup failed"


# =============================================================================
# Step policies and results
# =============================================================================

@dataclass(frozen=True)
class AbortOnFailure:
    """A failed step ends the run."""


@dataclass(frozen=True)
class FallbackOnFailure:
    """A failed step is replaced by a fixed value and the run continues."""
    value: Any


StepPolicy = Union[AbortOnFailure, FallbackOnFailure]


@dataclass(frozen=True)
class SetupStep:
    kind: str
    description: str
    run: Callable[[dict[str, Any]], Awaitable[Any]]
    on_failure: StepPolicy = field(default_factory=AbortOnFailure)


@dataclass(frozen=True)
class SetupSuccess:
    resources: RegistrySnapshot
    fallbacks: tuple[str, ...] = ()

    success = True

    @property
    def funding_source(self) -> FundingSource:
        return self.resources.funding_source

    @property
    def card_product(self) -> CardProduct:
        return self.resources.card_product

    @property
    def user(self) -> CardholderUser:
        return self.resources.user

    @property
    def card(self) -> Card:
        return self.resources.card

    @property
    def velocity_control(self) -> VelocityControl:
        return self.resources.velocity_control


@dataclass(frozen=True)
class SetupFailure:
    reason: str
    step: Optional[str] = None
    status: Optional[int] = None
    details: Optional[dict[str, Any]] = None

    success = False


SetupResult = Union[SetupSuccess, SetupFailure]


def _clock() -> str:
    return datetime.now().strftime("%H%M")


# =============================================================================
# Orchestrator
# =============================================================================

class SetupOrchestrator:
    """
    Creates a funding source, JIT card product, cardholder, virtual card and
    velocity control, then records them in the registry.
    """

    def __init__(
        self,
        client: MarqetaClient,
        registry: ResourceRegistry,
        settings: JitCardSettings,
    ) -> None:
        self._client = client
        self._registry = registry
        self._settings = settings

    # ------------------------------------------------------------------
    # Individual steps
    # ------------------------------------------------------------------

    async def create_funding_source(self) -> FundingSource:
        body = {
            "token": generate_token("fund"),
            "name": f"JIT-OneClick-{_clock()}",
        }
        response = await self._client.send("POST", "/fundingsources/program", body)
        return FundingSource.from_api(response.data)

    async def create_card_product(self, funding_source_token: str) -> CardProduct:
        body = {
            "token": generate_token("prod"),
            "name": f"OneClick-Card-{_clock()}",
            "start_date": self._settings.card_product_start_date,
            "config": {
                "fulfillment": {"payment_instrument": "VIRTUAL_PAN"},
                "poi": {"ecommerce": True, "atm": False},
                "card_life_cycle": {"activate_upon_issue": True},
                "jit_funding": {
                    "program_funding_source": {
                        "funding_source_token": funding_source_token,
                        "refunds_destination": "PROGRAM_FUNDING_SOURCE",
                        "enabled": True,
                    },
                },
            },
        }
        response = await self._client.send("POST", "/cardproducts", body)
        return CardProduct.from_api(response.data)

    async def create_user(self, overrides: Optional[dict[str, Any]] = None) -> CardholderUser:
        token = generate_token("user")
        now = datetime.now()
        body = {
            "token": token,
            "first_name": "OneClick",
            "last_name": f"User-{now:%H:%M}",
            "email": f"oneclick-{token_suffix(token)}@test.marqeta",
            "metadata": {
                "balance_limit": str(self._settings.balance_limit_cents),
                "notes": f"Created for One-Click Pay testing - {now:%Y-%m-%d %H:%M}",
            },
        }
        if overrides:
            body.update(overrides)
        response = await self._client.send("POST", "/users", body)
        return CardholderUser.from_api(response.data)

    async def create_card(self, user_token: str, card_product_token: str) -> Card:
        body = {
            "token": generate_token("card"),
            "user_token": user_token,
            "card_product_token": card_product_token,
            "metadata": {"notes": f"Virtual card for One-Click Pay - {_clock()}"},
        }
        response = await self._client.send(
            "POST", "/cards?show_pan=true&show_cvv_number=true", body
        )
        return Card.from_api(response.data)

    async def create_velocity_control(
        self,
        user_token: str,
        name: str = "Daily Spend Limit",
    ) -> VelocityControl:
        body = {
            "name": name,
            "association": {"user_token": user_token},
            "amount_limit": self._settings.balance_limit_cents,
            "currency_code": self._settings.currency_code,
            "velocity_window": self._settings.velocity_window,
            "active": True,
        }
        response = await self._client.send("POST", "/velocitycontrols", body)
        return VelocityControl.from_api(response.data)

    # ------------------------------------------------------------------
    # Chain
    # ------------------------------------------------------------------

    def steps(self) -> list[SetupStep]:
        return [
            SetupStep(
                kind="funding_source",
                description="program funding source",
                run=lambda done: self.create_funding_source(),
                on_failure=FallbackOnFailure(FundingSource.sandbox_default()),
            ),
            SetupStep(
                kind="card_product",
                description="card product with JIT funding",
                run=lambda done: self.create_card_product(done["funding_source"].token),
            ),
            SetupStep(
                kind="user",
                description="cardholder user",
                run=lambda done: self.create_user(),
            ),
            SetupStep(
                kind="card",
                description="virtual card",
                run=lambda done: self.create_card(done["user"].token, done["card_product"].token),
            ),
            SetupStep(
                kind="velocity_control",
                description="velocity control",
                run=lambda done: self.create_velocity_control(done["user"].token),
            ),
        ]

    async def run_setup(self) -> SetupResult:
        """Run the full chain. Returns SetupSuccess or SetupFailure, never raises."""
        async with self._registry.writer_lock:
            logger.info("Starting JIT funding setup")

            if not await self._client.ping():
                return SetupFailure(reason=CONNECTIVITY_FAILURE_REASON, step=CONNECTIVITY_STEP)

            created: dict[str, Any] = {}
            fallbacks: list[str] = []
            for index, step in enumerate(self.steps(), start=1):
                logger.info("Step %d: creating %s", index, step.description)
                try:
                    created[step.kind] = await step.run(created)
                except Exception as exc:
                    if isinstance(step.on_failure, FallbackOnFailure):
                        logger.warning(
                            "Could not create %s, using fallback: %s",
                            step.description,
                            getattr(exc, "message", exc),
                        )
                        created[step.kind] = step.on_failure.value
                        fallbacks.append(step.kind)
                        continue
                    return self._failure(step, exc)
                logger.info("Step %d done: %s", index, getattr(created[step.kind], "token", ""))

            snapshot = RegistrySnapshot(**created)
            self._registry.commit(snapshot)
            logger.info("JIT funding setup completed", extra={"card_token": snapshot.card.token})
            return SetupSuccess(resources=snapshot, fallbacks=tuple(fallbacks))

    @staticmethod
    def _failure(step: SetupStep, exc: Exception) -> SetupFailure:
        if isinstance(exc, UpstreamError):
            logger.error("JIT funding setup failed at %s: %s", step.kind, exc.message)
            return SetupFailure(
                reason=exc.message,
                step=step.kind,
                status=exc.status,
                details=exc.details or None,
            )
        if isinstance(exc, JitCardError):
            logger.error("JIT funding setup failed at %s: %s", step.kind, exc.message)
            return SetupFailure(reason=exc.message, step=step.kind, details=exc.details or None)
        logger.exception("JIT funding setup failed at %s", step.kind)
        return SetupFailure(reason=GENERIC_FAILURE_REASON, step=step.kind)
