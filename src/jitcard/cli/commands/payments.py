"""Transaction simulation commands."""
from __future__ import annotations

from typing import Optional

import click
from rich.console import Console

from ..runner import run_operation
from .cards import print_setup

console = Console()


def _print_transaction(data: dict) -> None:
    txn = data.get("transaction") or {}
    console.print(f"  Transaction: [cyan]{txn.get('token', 'N/A')}[/cyan]")
    console.print(f"  State:       {txn.get('state', 'N/A')}")
    if txn.get("amount") is not None:
        console.print(f"  Amount:      [green]${txn['amount']}[/green]")
    gpa_order = data.get("gpa_order")
    if gpa_order:
        console.print(
            f"  JIT funding: [green]${gpa_order.get('amount')}[/green] "
            f"({gpa_order.get('state', 'N/A')})"
        )


@click.command()
@click.option("--card-token", required=True, help="Card to charge")
@click.option("--amount", required=True, help="Amount in dollars (e.g., 10.00)")
@click.option("--webhook-endpoint", help="URL to receive transaction events")
@click.pass_context
def simulate(ctx, card_token: str, amount: str, webhook_endpoint: Optional[str]):
    """Simulate an authorization."""
    payload = {"action": "simulate", "cardToken": card_token, "amount": amount}
    if webhook_endpoint:
        payload["webhookEndpoint"] = webhook_endpoint
    response = run_operation(ctx, lambda d: d.dispatch(payload))

    console.print(f"[green]{response['message']}[/green]")
    _print_transaction(response["data"])


@click.command()
@click.option("--transaction-token", required=True, help="Authorization to clear")
@click.option("--amount", required=True, type=int, help="Authorized amount in cents")
@click.pass_context
def clear(ctx, transaction_token: str, amount: int):
    """Clear a previous authorization."""
    response = run_operation(
        ctx,
        lambda d: d.dispatch(
            {"action": "clear", "transactionToken": transaction_token, "amount": amount}
        ),
    )

    console.print(f"[green]{response['message']}[/green]")
    _print_transaction(response["data"])


@click.command()
@click.option("--amount", required=True, help="Amount in dollars (e.g., 10.00)")
@click.option("--card-token", help="Card to charge; runs setup first when omitted")
@click.option("--no-clear", is_flag=True, help="Leave the transaction authorized")
@click.pass_context
def pay(ctx, amount: str, card_token: Optional[str], no_clear: bool):
    """One-click payment: authorize, then clear."""

    async def _pay(dispatcher):
        token = card_token
        if token is None:
            setup_response = await dispatcher.dispatch({"action": "setup"})
            print_setup(setup_response["data"])
            token = setup_response["data"]["card"]["token"]
        return await dispatcher.pay_with_card(
            {"cardToken": token, "amount": amount, "autoClear": not no_clear}
        )

    response = run_operation(ctx, _pay)

    data = response["data"]
    if data.get("cleared"):
        console.print("[green]Payment completed[/green]")
    else:
        console.print("[yellow]Payment authorized[/yellow]")
    if data.get("warning"):
        console.print(f"[yellow]Warning: {data['warning']}[/yellow]")
    _print_transaction(data)
