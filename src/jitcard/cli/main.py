"""
jitcard CLI main entry point.

Usage:
    jitcard [OPTIONS] COMMAND [ARGS]...
"""
from __future__ import annotations

import click
from rich.console import Console

from jitcard.api.middleware import setup_logging
from jitcard.config import load_settings

from .commands import cards, payments

console = Console()


@click.group()
@click.version_option(package_name="jitcard", message="%(prog)s %(version)s")
@click.option("--env-file", type=click.Path(dir_okay=False), help="Read settings from this .env file")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, env_file: str | None, verbose: bool):
    """jitcard - Marqeta JIT funding demo from the command line."""
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = load_settings(env_file)
    ctx.obj["verbose"] = verbose
    setup_logging(json_format=False, level="DEBUG" if verbose else "WARNING")


@cli.command()
@click.pass_context
def status(ctx):
    """Show current configuration."""
    settings = ctx.obj["settings"]

    console.print("\n[bold blue]jitcard Status[/bold blue]\n")
    console.print(f"Environment: [cyan]{settings.environment}[/cyan]")
    console.print(f"Marqeta API: [cyan]{settings.marqeta_base_url}[/cyan]")

    app_token = settings.marqeta_app_token
    if app_token:
        masked = app_token[:8] + "..." + app_token[-4:] if len(app_token) > 12 else "***"
        console.print(f"App Token: [green]{masked}[/green]")
    else:
        console.print("App Token: [yellow]Not configured[/yellow]")
    console.print(
        "Admin Token: "
        + ("[green]configured[/green]" if settings.marqeta_admin_token else "[yellow]Not configured[/yellow]")
    )
    console.print(f"Balance limit: [green]${settings.balance_limit_cents / 100:.2f}[/green]")
    console.print()


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, type=int, show_default=True)
@click.pass_context
def serve(ctx, host: str, port: int):
    """Run the HTTP API."""
    import uvicorn

    from jitcard.api import create_app

    uvicorn.run(create_app(ctx.obj["settings"]), host=host, port=port)


cli.add_command(cards.setup)
cli.add_command(cards.balance)
cli.add_command(payments.simulate)
cli.add_command(payments.clear)
cli.add_command(payments.pay)


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
