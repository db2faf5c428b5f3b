"""Typer surface of the command grammar.

Leaf commands do not talk to the backend: each one only builds and returns
the `Invocation` it describes. `cli.main.parse` runs this app with
`standalone_mode=False` to obtain that value, and dispatch happens afterwards.
Flag spellings, help texts and defaults come from `core.grammar`.
"""

from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Annotated, Optional

import typer

from core.domain.commands import (
    ChatsArchive,
    ChatsCommand,
    ChatsInfo,
    ChatsList,
    ChatsPrint,
    ChatsUnarchive,
    DownloadCommand,
    DownloadRequest,
    Invocation,
    MiscCommand,
    MiscContacts,
    MiscExport,
    MiscSearch,
    SendCommand,
    SendRequest,
    SessionAction,
    SessionCommand,
    parse_rfc3339,
)
from core.grammar import (
    CONFIG,
    CONTACTS_DETAILS,
    DOWNLOAD_OUT,
    EXPORT_FORMAT,
    LIST_DETAILS,
    LIST_LIMIT,
    ORDER_ALPHABETICAL,
    ORDER_CHRONOLOGICAL,
    ORDER_REVERSE,
    ORDERING,
    PRINT_COUNT,
    PRINT_TIMESTAMPS,
    PROG_NAME,
    SEARCH_LIMIT,
    SEND_AT,
    SEND_ATTACH,
    VERBOSE,
)

try:
    __version__ = package_version(PROG_NAME)
except PackageNotFoundError:
    __version__ = "0.0.0+local"

app = typer.Typer(
    name=PROG_NAME,
    help="A command-line tool for interacting with WhatsApp.",
    add_completion=False,
)
chats_app = typer.Typer(help="List, read and manage chats.")
session_app = typer.Typer(help="Inspect the backend session.")
misc_app = typer.Typer(help="Search, export and contacts.")

app.add_typer(chats_app, name="chats")
app.add_typer(session_app, name="session")
app.add_typer(misc_app, name="misc")


def _invocation(ctx: typer.Context, command) -> Invocation:
    params = ctx.find_root().params
    return Invocation(
        verbose=bool(params.get("verbose", False)),
        config=params.get("config"),
        command=command,
    )


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PROG_NAME} {__version__}")
        raise typer.Exit()


def _timestamp_callback(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        parse_rfc3339(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{value!r} is not an RFC3339 timestamp ({exc})") from exc
    return value


@app.callback()
def root(
    verbose: Annotated[bool, typer.Option(*VERBOSE.decls, help=VERBOSE.help)] = VERBOSE.default,
    config: Annotated[
        Optional[str],
        typer.Option(*CONFIG.decls, help=CONFIG.help, metavar=CONFIG.metavar),
    ] = CONFIG.default,
    version: Annotated[
        bool,
        typer.Option("--version", help="Show the version and exit.", callback=_version_callback, is_eager=True),
    ] = False,
) -> None:
    """A command-line tool for interacting with WhatsApp."""


# chats


@chats_app.command("list")
def chats_list(
    ctx: typer.Context,
    details: Annotated[bool, typer.Option(*LIST_DETAILS.decls, help=LIST_DETAILS.help)] = LIST_DETAILS.default,
    limit: Annotated[
        int,
        typer.Option(*LIST_LIMIT.decls, help=LIST_LIMIT.help, metavar=LIST_LIMIT.metavar, min=0),
    ] = LIST_LIMIT.default,
    chronological_order: Annotated[
        int, typer.Option(*ORDER_CHRONOLOGICAL.decls, help=ORDER_CHRONOLOGICAL.help, count=True)
    ] = 0,
    reverse_chronological_order: Annotated[
        int, typer.Option(*ORDER_REVERSE.decls, help=ORDER_REVERSE.help, count=True)
    ] = 0,
    alphabetical_order: Annotated[
        int, typer.Option(*ORDER_ALPHABETICAL.decls, help=ORDER_ALPHABETICAL.help, count=True)
    ] = 0,
) -> Invocation:
    """List chats."""

    order = ORDERING.resolve(
        {
            ORDER_CHRONOLOGICAL.long: chronological_order,
            ORDER_REVERSE.long: reverse_chronological_order,
            ORDER_ALPHABETICAL.long: alphabetical_order,
        }
    )
    query = ChatsList(details=details, limit=limit, order=order)
    return _invocation(ctx, ChatsCommand(query=query))


@chats_app.command("print")
def chats_print(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(metavar="TARGET", help="Chat id, number or name.")],
    count: Annotated[
        int,
        typer.Option(*PRINT_COUNT.decls, help=PRINT_COUNT.help, metavar=PRINT_COUNT.metavar, min=0),
    ] = PRINT_COUNT.default,
    timestamps: Annotated[
        bool, typer.Option(*PRINT_TIMESTAMPS.decls, help=PRINT_TIMESTAMPS.help)
    ] = PRINT_TIMESTAMPS.default,
) -> Invocation:
    """Print the latest messages of a chat."""

    query = ChatsPrint(target=target, count=count, timestamps=timestamps)
    return _invocation(ctx, ChatsCommand(query=query))


@chats_app.command("info")
def chats_info(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(metavar="TARGET", help="Chat id, number or name.")],
) -> Invocation:
    """Show details about one chat."""

    return _invocation(ctx, ChatsCommand(query=ChatsInfo(target=target)))


@chats_app.command("archive")
def chats_archive(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(metavar="TARGET")],
) -> Invocation:
    """Archive a chat."""

    return _invocation(ctx, ChatsCommand(query=ChatsArchive(target=target)))


@chats_app.command("unarchive")
def chats_unarchive(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(metavar="TARGET")],
) -> Invocation:
    """Move a chat out of the archive."""

    return _invocation(ctx, ChatsCommand(query=ChatsUnarchive(target=target)))


# send / download


@app.command("send")
def send(
    ctx: typer.Context,
    to: Annotated[str, typer.Argument(metavar="TO", help="Number or chat id of the receiver.")],
    message: Annotated[
        Optional[str],
        typer.Argument(metavar="MESSAGE", help="Text message. Read from stdin when omitted."),
    ] = None,
    attach: Annotated[
        Optional[str],
        typer.Option(*SEND_ATTACH.decls, help=SEND_ATTACH.help, metavar=SEND_ATTACH.metavar),
    ] = SEND_ATTACH.default,
    at: Annotated[
        Optional[str],
        typer.Option(
            *SEND_AT.decls,
            help=SEND_AT.help,
            metavar=SEND_AT.metavar,
            callback=_timestamp_callback,
        ),
    ] = SEND_AT.default,
) -> Invocation:
    """Send a message."""

    request = SendRequest(to=to, message=message, attach=attach, at=at)
    return _invocation(ctx, SendCommand(request=request))


@app.command("download")
def download(
    ctx: typer.Context,
    attachment_id: Annotated[str, typer.Argument(metavar="ATTACHMENT_ID")],
    out: Annotated[
        str,
        typer.Option(*DOWNLOAD_OUT.decls, help=DOWNLOAD_OUT.help, metavar=DOWNLOAD_OUT.metavar),
    ] = DOWNLOAD_OUT.default,
) -> Invocation:
    """Download an attachment."""

    request = DownloadRequest(attachment_id=attachment_id, out=out)
    return _invocation(ctx, DownloadCommand(request=request))


# session


@session_app.command("login")
def session_login(ctx: typer.Context) -> Invocation:
    """Check that the backend accepts our credentials."""

    return _invocation(ctx, SessionCommand(action=SessionAction.LOGIN))


@session_app.command("logout")
def session_logout(ctx: typer.Context) -> Invocation:
    """End the backend session."""

    return _invocation(ctx, SessionCommand(action=SessionAction.LOGOUT))


@session_app.command("status")
def session_status(ctx: typer.Context) -> Invocation:
    """Show connectivity and authentication state."""

    return _invocation(ctx, SessionCommand(action=SessionAction.STATUS))


# misc


@misc_app.command("search")
def misc_search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(metavar="QUERY")],
    limit: Annotated[
        int,
        typer.Option(*SEARCH_LIMIT.decls, help=SEARCH_LIMIT.help, metavar=SEARCH_LIMIT.metavar, min=0),
    ] = SEARCH_LIMIT.default,
) -> Invocation:
    """Search messages."""

    return _invocation(ctx, MiscCommand(action=MiscSearch(query=query, limit=limit)))


@misc_app.command("export")
def misc_export(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(metavar="TARGET")],
    format: Annotated[
        str,
        typer.Option(*EXPORT_FORMAT.decls, help=EXPORT_FORMAT.help, metavar=EXPORT_FORMAT.metavar),
    ] = EXPORT_FORMAT.default,
) -> Invocation:
    """Export a chat."""

    return _invocation(ctx, MiscCommand(action=MiscExport(target=target, format=format)))


@misc_app.command("contacts")
def misc_contacts(
    ctx: typer.Context,
    details: Annotated[
        bool, typer.Option(*CONTACTS_DETAILS.decls, help=CONTACTS_DETAILS.help)
    ] = CONTACTS_DETAILS.default,
) -> Invocation:
    """List contacts."""

    return _invocation(ctx, MiscCommand(action=MiscContacts(details=details)))
