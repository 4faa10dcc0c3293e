"""Marqeta JIT funding routes: setup, simulate, clear, balance and payments."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from jitcard.dispatcher import CommandDispatcher

router = APIRouter(tags=["marqeta"])


# Dependencies

class MarqetaDependencies:
    """Dependencies for Marqeta routes."""
    def __init__(self, dispatcher: CommandDispatcher):
        self.dispatcher = dispatcher


def get_deps() -> MarqetaDependencies:
    """Dependency injection placeholder."""
    raise NotImplementedError("Must be overridden")


# Routes

@router.post("/setup")
async def run_command(
    payload: Dict[str, Any] = Body(...),
    deps: MarqetaDependencies = Depends(get_deps),
):
    """
    Action-keyed command endpoint.

    Actions: ``setup``, ``simulate`` (cardToken, amount in dollars,
    webhookEndpoint?), ``clear`` (transactionToken, amount in cents) and
    ``balance`` (userToken).
    """
    return await deps.dispatcher.dispatch(payload)


@router.post("/one-click-pay")
async def one_click_pay(
    payload: Dict[str, Any] = Body(...),
    deps: MarqetaDependencies = Depends(get_deps),
):
    """Authorize (and by default clear) a payment on a card token."""
    return await deps.dispatcher.pay_with_card(payload)


@router.post("/nfc-pay")
async def nfc_pay(
    payload: Dict[str, Any] = Body(...),
    deps: MarqetaDependencies = Depends(get_deps),
):
    """Pay with the raw card number read from an NFC card."""
    return await deps.dispatcher.pay_with_pan(payload)


@router.post("/process-pin-payment")
async def process_pin_payment(
    payload: Dict[str, Any] = Body(...),
    deps: MarqetaDependencies = Depends(get_deps),
):
    """PIN-gated payment by PAN or card token."""
    return await deps.dispatcher.pay_with_pin(payload)
