"""Console rendering of room messages."""

from rich.console import Console
from rich.text import Text

from roomchat.models.message import Message

TIME_FORMAT = "%H:%M"


def render_message(console: Console, message: Message, own: bool = False) -> None:
    when = message.sort_key.astimezone().strftime(TIME_FORMAT)
    if message.is_banner:
        label = f"{message.name}: {message.text}" if message.name else message.text
        console.print(Text(label, style="bold yellow"), justify="center")
        return
    line = Text()
    line.append(f"{when} ", style="dim")
    line.append(message.name or "?", style="bold magenta" if own else "bold cyan")
    line.append(": ")
    line.append(message.text)
    if message.pending:
        line.append(" (sending...)", style="dim italic")
    console.print(line)
