"""Runs dispatcher operations for a single CLI invocation."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import click
from rich.console import Console

from jitcard.client import MarqetaClient
from jitcard.dispatcher import CommandDispatcher
from jitcard.exceptions import JitCardError

console = Console()


def run_operation(
    ctx: click.Context,
    operation: Callable[[CommandDispatcher], Awaitable[Any]],
) -> Any:
    """Build a client and dispatcher, run ``operation``, and exit 1 on failure.

    The registry lives only as long as this call.
    """
    settings = ctx.obj["settings"]

    async def _main() -> Any:
        async with MarqetaClient.from_settings(settings, transport=ctx.obj.get("transport")) as client:
            dispatcher = CommandDispatcher.build(client, settings)
            return await operation(dispatcher)

    try:
        return asyncio.run(_main())
    except JitCardError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        ctx.exit(1)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)
