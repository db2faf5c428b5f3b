"""Routing of a validated invocation to exactly one handler.

The CLI parses argv into an `Invocation` (see `cli.main.parse`); this module
takes it from there:

- resolves the stdin fallback for `send` when no MESSAGE was given,
- looks up the handler for the payload type,
- awaits it with the injected `MessagingClient`.

Collaborator errors propagate unchanged; nothing here retries.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence, TextIO

from core.domain.commands import (
    ChatsArchive,
    ChatsInfo,
    ChatsList,
    ChatsPrint,
    ChatsUnarchive,
    DownloadRequest,
    Invocation,
    MiscContacts,
    MiscExport,
    MiscSearch,
    SendRequest,
    SessionAction,
)
from core.domain.models import (
    ChatSummary,
    Contact,
    Message,
    SendReceipt,
    SessionHandle,
    SessionStatus,
)
from core.errors import InputError
from core.interfaces.messaging import MessagingClient

logger = logging.getLogger(__name__)

Handler = Callable[[Any, MessagingClient], Awaitable[Any]]


async def handle_chats_list(query: ChatsList, client: MessagingClient) -> Sequence[ChatSummary]:
    return await client.list_chats(query)


async def handle_chats_print(query: ChatsPrint, client: MessagingClient) -> Sequence[Message]:
    return await client.fetch_messages(query.target, query.count, query.timestamps)


async def handle_chats_info(query: ChatsInfo, client: MessagingClient) -> ChatSummary:
    return await client.chat_info(query.target)


async def handle_chats_archive(query: ChatsArchive, client: MessagingClient) -> None:
    await client.archive_chat(query.target)


async def handle_chats_unarchive(query: ChatsUnarchive, client: MessagingClient) -> None:
    await client.unarchive_chat(query.target)


async def handle_send(request: SendRequest, client: MessagingClient) -> SendReceipt:
    """Send `request`; its message must already be resolved."""

    if request.message is None:
        raise ValueError("send handler needs a resolved message body")
    attachment = Path(request.attach) if request.attach is not None else None
    return await client.send_message(
        request.to,
        request.message,
        attachment=attachment,
        scheduled_at=request.scheduled_at,
    )


async def handle_download(request: DownloadRequest, client: MessagingClient) -> Path:
    return await client.download_attachment(request.attachment_id, Path(request.out))


async def handle_session(
    action: SessionAction, client: MessagingClient
) -> SessionHandle | SessionStatus | None:
    if action is SessionAction.LOGIN:
        return await client.login()
    if action is SessionAction.LOGOUT:
        await client.logout()
        return None
    return await client.status()


async def handle_search(action: MiscSearch, client: MessagingClient) -> Sequence[Message]:
    return await client.search(action.query, action.limit)


async def handle_export(action: MiscExport, client: MessagingClient) -> str:
    return await client.export(action.target, action.format)


async def handle_contacts(action: MiscContacts, client: MessagingClient) -> Sequence[Contact]:
    return await client.list_contacts(action.details)


HANDLERS: dict[type, Handler] = {
    ChatsList: handle_chats_list,
    ChatsPrint: handle_chats_print,
    ChatsInfo: handle_chats_info,
    ChatsArchive: handle_chats_archive,
    ChatsUnarchive: handle_chats_unarchive,
    SendRequest: handle_send,
    DownloadRequest: handle_download,
    SessionAction: handle_session,
    MiscSearch: handle_search,
    MiscExport: handle_export,
    MiscContacts: handle_contacts,
}


async def read_message_body(stdin: TextIO | None = None) -> str:
    """Read standard input until end-of-stream.

    The read blocks, so it runs in a worker thread and the event loop stays
    free. An empty stream is an empty body, not an error.
    """

    stream = stdin if stdin is not None else sys.stdin
    if stream is None:
        raise InputError("no standard input available to read the message from")
    try:
        return await asyncio.to_thread(stream.read)
    except (OSError, UnicodeDecodeError, ValueError) as exc:
        raise InputError(f"could not read message from standard input: {exc}") from exc


async def dispatch(
    invocation: Invocation,
    client: MessagingClient,
    *,
    stdin: TextIO | None = None,
) -> Any:
    """Run the single handler for `invocation` and return its result."""

    payload = invocation.payload
    if isinstance(payload, SendRequest) and payload.message is None:
        logger.debug("no MESSAGE argument, reading body from stdin")
        body = await read_message_body(stdin)
        payload = payload.model_copy(update={"message": body})

    handler = HANDLERS.get(type(payload))
    if handler is None:
        raise TypeError(f"no handler registered for {type(payload).__name__}")

    logger.debug("dispatching %s to %s", type(payload).__name__, handler.__name__)
    return await handler(payload, client)
