"""CLI: roomchat chat, roomchat send"""

import asyncio

import click
from rich.console import Console

from roomchat.cli.render import render_message
from roomchat.send import SendStatus

console = Console()


def _get_client():
    from roomchat.cli.main import _get_client
    return _get_client()


def _run(coro):
    from roomchat.cli.main import _run
    return _run(coro)


@click.command("chat")
def chat_cmd():
    """Join the room and chat interactively."""

    async def _chat():
        client = _get_client()
        shown: set[str] = set()

        def on_change(snapshot):
            for message in snapshot:
                if message.id is None or message.id in shown:
                    continue
                shown.add(message.id)
                render_message(console, message, own=client.is_own(message))

        remove = client.on_change(on_change)
        with console.status("Loading messages..."):
            await client.connect()
            await client.wait_ready(timeout=10.0)
        console.print(f"[cyan]You are {client.user.name}. /name <new name> to rename, /quit to exit.[/cyan]\n")
        try:
            while True:
                text = await asyncio.to_thread(click.prompt, "", prompt_suffix="> ", default="", show_default=False)
                if text.strip().lower() in ("/quit", "/exit"):
                    break
                if text.startswith("/name"):
                    new_name = text[len("/name"):].strip()
                    if new_name:
                        user = client.rename(new_name)
                        console.print(f"[dim]Now known as {user.name}[/dim]")
                    continue
                if not text.strip():
                    continue
                outcome = await client.send(text)
                if outcome.status is SendStatus.FAILED:
                    console.print(f"[red]Not sent ({outcome.error}). Your text: {outcome.draft}[/red]")
                elif not outcome.ok:
                    console.print(f"[yellow]{outcome.error}[/yellow]")
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            remove()
            await client.disconnect()

    _run(_chat())


@click.command("send")
@click.argument("message")
def send_cmd(message: str):
    """Send a one-shot message."""

    async def _send():
        client = _get_client()
        await client.connect()
        try:
            outcome = await client.send(message)
        finally:
            await client.disconnect()
        if outcome.ok:
            console.print(f"[green]Sent[/green] [dim]{outcome.message.id if outcome.message else ''}[/dim]")
        else:
            console.print(f"[red]{outcome.status.value}: {outcome.error}[/red]")
            raise SystemExit(1)

    _run(_send())
