"""Card provisioning commands."""
from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from ..runner import run_operation

console = Console()


def print_setup(data: dict) -> None:
    table = Table(title="JIT Funding Resources")
    table.add_column("Resource", style="cyan")
    table.add_column("Token", style="dim")
    table.add_column("Details")

    table.add_row("Funding source", data["fundingSource"]["token"], data["fundingSource"]["name"])
    table.add_row("Card product", data["cardProduct"]["token"], data["cardProduct"]["name"])
    table.add_row("User", data["user"]["token"], data["user"]["name"])
    card = data["card"]
    table.add_row("Card", card["token"], f"{card['pan']}  exp {card['expiration']}  cvv {card['cvv']}")
    velocity = data["velocityControl"]
    table.add_row(
        "Velocity control",
        velocity["token"],
        f"${velocity['amountLimit'] / 100:.2f} per {velocity['window']}",
    )
    console.print(table)


@click.command()
@click.pass_context
def setup(ctx):
    """Provision a funding source, card product, user, card and spend limit."""
    response = run_operation(ctx, lambda d: d.dispatch({"action": "setup"}))

    console.print(f"[green]{response['message']}[/green]")
    if response.get("warning"):
        console.print(f"[yellow]Warning: {response['warning']}[/yellow]")
    print_setup(response["data"])


@click.command()
@click.option("--user-token", required=True, help="Cardholder user token")
@click.pass_context
def balance(ctx, user_token: str):
    """Show a cardholder's account record."""
    response = run_operation(
        ctx,
        lambda d: d.dispatch({"action": "balance", "userToken": user_token}),
    )

    if response.get("warning"):
        console.print(f"[yellow]Warning: {response['warning']}[/yellow]")
        return

    data = response["data"]
    console.print(f"\n[bold]User {data.get('token', user_token)}[/bold]\n")
    console.print(f"  Name:    {data.get('first_name', '')} {data.get('last_name', '')}".rstrip())
    console.print(f"  Email:   {data.get('email', 'N/A')}")
    console.print(f"  Status:  {data.get('status', 'N/A')}")
    limit = (data.get("metadata") or {}).get("balance_limit")
    if limit is not None:
        console.print(f"  Limit:   [green]{limit}[/green] cents")
    console.print()
