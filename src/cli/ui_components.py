"""CLI UI components (Rich).

Why keep them apart:
- Handlers return typed values; this module decides how they look.
- Tables and panels can be reused by several commands (print and search both
  render messages).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.commands import (
    ChatsArchive,
    ChatsInfo,
    ChatsList,
    ChatsPrint,
    ChatsUnarchive,
    Invocation,
    MiscContacts,
    MiscExport,
    MiscSearch,
)
from core.domain.models import (
    ChatSummary,
    Contact,
    Message,
    SendReceipt,
    SessionHandle,
    SessionState,
    SessionStatus,
)

_STATE_STYLES = {
    SessionState.CONNECTED: "green",
    SessionState.UNAUTHORIZED: "yellow",
    SessionState.UNREACHABLE: "red",
}


def build_chats_table(chats: Sequence[ChatSummary], *, details: bool) -> Table:
    table = Table(title="Chats")
    table.add_column("Chat", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    if details:
        table.add_column("Group", style="magenta")
        table.add_column("Last message", style="dim")
    for chat in chats:
        row = [escape(chat.id), escape(chat.name or "")]
        if details:
            row += ["yes" if chat.is_group else "no", escape(chat.last_message or "")]
        table.add_row(*row)
    return table


def build_messages_table(messages: Sequence[Message], *, title: str, timestamps: bool) -> Table:
    table = Table(title=title)
    if timestamps:
        table.add_column("Time (UTC)", style="dim", no_wrap=True)
    table.add_column("From", style="cyan", no_wrap=True)
    table.add_column("Message", style="white")
    for message in messages:
        body = message.body
        if message.has_media:
            body = f"(media) {body}".rstrip()
        row = [escape(message.sender), escape(body)]
        if timestamps:
            row.insert(0, message.sent_at.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row(*row)
    return table


def build_contacts_table(contacts: Sequence[Contact], *, details: bool) -> Table:
    table = Table(title="Contacts")
    table.add_column("Number", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    if details:
        table.add_column("Last message", style="dim")
    for contact in contacts:
        row = [escape(contact.number), escape(contact.name or "")]
        if details:
            row.append(escape(contact.last_message or ""))
        table.add_row(*row)
    return table


def build_chat_panel(chat: ChatSummary) -> Panel:
    body = Text()
    body.append("Id: ", style="bold")
    body.append(f"{chat.id}\n")
    body.append("Name: ", style="bold")
    body.append(f"{chat.name or '-'}\n")
    body.append("Group: ", style="bold")
    body.append("yes" if chat.is_group else "no")
    if chat.last_message:
        body.append("\n\nLast message:\n", style="bold")
        body.append(chat.last_message)
    return Panel(body, title=Text(chat.label, style="bold cyan"), border_style="cyan")


def build_status_table(status: SessionStatus) -> Table:
    table = Table(title="Session")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")
    style = _STATE_STYLES[status.state]
    table.add_row("Bridge", f"[{style}]{status.state.value}[/{style}]", escape(status.detail))
    table.add_row("URL", "", escape(status.base_url))
    return table


def render_result(console: Console, invocation: Invocation, result: Any) -> None:
    """Print the handler result for `invocation`."""

    payload = invocation.payload

    if isinstance(payload, ChatsList):
        console.print(build_chats_table(result, details=payload.details))
    elif isinstance(payload, ChatsPrint):
        console.print(build_messages_table(result, title=escape(payload.target), timestamps=payload.timestamps))
    elif isinstance(payload, ChatsInfo):
        console.print(build_chat_panel(result))
    elif isinstance(payload, ChatsArchive):
        console.print(f"[green]Archived[/green] {escape(payload.target)}")
    elif isinstance(payload, ChatsUnarchive):
        console.print(f"[green]Unarchived[/green] {escape(payload.target)}")
    elif isinstance(payload, MiscSearch):
        console.print(build_messages_table(result, title=f"Search: {escape(payload.query)}", timestamps=True))
    elif isinstance(payload, MiscExport):
        console.out(result, highlight=False)
    elif isinstance(payload, MiscContacts):
        console.print(build_contacts_table(result, details=payload.details))
    elif isinstance(result, SendReceipt):
        suffix = f" with {escape(result.attachment)}" if result.attachment else ""
        console.print(f"[green]Sent[/green] to {escape(result.to)}{suffix}")
    elif isinstance(result, Path):
        console.print(f"[green]Saved[/green] {escape(str(result))}")
    elif isinstance(result, SessionHandle):
        console.print(
            f"[green]Logged in[/green] to {escape(result.base_url)} "
            f"(token {result.token_fingerprint})"
        )
    elif isinstance(result, SessionStatus):
        console.print(build_status_table(result))
    elif result is None:
        console.print("[green]Done[/green]")
    else:
        console.print(result)
