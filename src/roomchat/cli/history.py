"""CLI: roomchat history, roomchat whoami"""

import json

import click
from rich.console import Console

from roomchat.cli.render import render_message
from roomchat.identity import IdentityStore

console = Console()


def _get_client():
    from roomchat.cli.main import _get_client
    return _get_client()


def _run(coro):
    from roomchat.cli.main import _run
    return _run(coro)


@click.command("history")
@click.option("--limit", default=50, type=int)
@click.option("--json-output", "--json", is_flag=True)
def history_cmd(limit: int, json_output: bool):
    """Print the most recent messages in the room."""

    async def _history():
        client = _get_client()
        await client.connect()
        try:
            await client.wait_ready(timeout=10.0)
            messages = client.messages[-limit:] if limit > 0 else ()
        finally:
            await client.disconnect()
        if json_output:
            click.echo(json.dumps([m.to_wire() for m in messages], indent=2))
            return
        if not messages:
            console.print("[dim]No messages yet.[/dim]")
        for message in messages:
            render_message(console, message, own=client.is_own(message))

    _run(_history())


@click.command("whoami")
def whoami_cmd():
    """Show the local participant."""
    user = IdentityStore().user
    console.print(f"[bold]{user.name}[/bold] [dim]{user.id}[/dim]")
