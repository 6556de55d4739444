"""
roomchat CLI — `roomchat` command.

Commands:
  roomchat chat             Interactive room REPL
  roomchat send <message>   One-shot message
  roomchat history          Print the current window
  roomchat whoami           Show the local participant
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install roomchat[cli]")

from roomchat.client import AsyncRoomChat
from roomchat.config import ChatConfig
from roomchat.store.memory import MemoryStore

console = Console()


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _get_client() -> AsyncRoomChat:
    ctx = click.get_current_context()
    opts = ctx.find_root().obj or {}
    config = ChatConfig.from_env()
    if opts.get("realtime") is not None:
        config = config.model_copy(update={"enable_realtime": opts["realtime"]})
    store = MemoryStore() if opts.get("offline") else None
    return AsyncRoomChat(config, store=store)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("--offline", is_flag=True, help="Use an in-process store instead of the server.")
@click.option("--realtime/--poll", default=None, help="Live query or a single fetch at startup.")
@click.option("--debug", is_flag=True)
@click.pass_context
def main(ctx, offline, realtime, debug):
    """roomchat — one shared room, anonymous participants."""
    ctx.obj = {"offline": offline, "realtime": realtime}
    _setup_logging(debug or ChatConfig.from_env().debug)


# Register subcommands from separate modules
from roomchat.cli.chat import chat_cmd, send_cmd
from roomchat.cli.history import history_cmd, whoami_cmd

main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(history_cmd)
main.add_command(whoami_cmd)


if __name__ == "__main__":
    main()
