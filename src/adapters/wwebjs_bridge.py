"""`MessagingClient` backed by the whatsapp-web.js REST bridge.

The bridge is a small Node/Express server wrapping whatsapp-web.js. It owns
the WhatsApp session (QR login happens in its terminal) and exposes:

- `GET /chats`            -> `[{id, name, isGroup, lastMessage}]`, most recent first
- `GET /messages/<id>`    -> `[{from, body, timestamp, hasmedia, id, isGroupMsg}]`
- `POST /send-text`       -> `{number, message}`
- `POST /send-image`      -> `{number, base64, caption}`

Every route requires `Authorization: Bearer <token>`. Operations without a
route raise `UnsupportedOperationError` instead of guessing one.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.commands import ChatOrder, ChatsList
from core.domain.models import (
    ChatSummary,
    Contact,
    Message,
    SendReceipt,
    SessionHandle,
    SessionState,
    SessionStatus,
)
from core.errors import (
    AuthError,
    CollaboratorError,
    FetchError,
    NotFoundError,
    SendError,
    UnsupportedOperationError,
)
from core.interfaces.messaging import MessagingClient

logger = logging.getLogger(__name__)

BACKEND_NAME = "the whatsapp-web.js bridge"


def order_chats(chats: Iterable[ChatSummary], order: ChatOrder) -> list[ChatSummary]:
    """Apply `order` to chats listed by the bridge (which sends newest first)."""

    items = list(chats)
    if order is ChatOrder.CHRONOLOGICAL:
        return items[::-1]
    if order is ChatOrder.ALPHABETICAL:
        return sorted(items, key=lambda chat: (chat.label.casefold(), chat.id))
    return items


def chat_matches(chat: ChatSummary, target: str) -> bool:
    """True when `target` names `chat` by full id, bare number or display name."""

    wanted = target.strip()
    if chat.id == wanted or chat.id.split("@", 1)[0] == wanted:
        return True
    return bool(chat.name) and chat.name.casefold() == wanted.casefold()


def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]


class WwebJsBridgeClient(MessagingClient):
    """HTTP client for the bridge. One short-lived `httpx.AsyncClient` per call."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._settings.bridge_url

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: type[CollaboratorError],
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        token = self._settings.resolve_api_token()
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            async with build_async_client(
                self._settings, token=token, transport=self._transport
            ) as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise error_cls(f"{method} {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            hint = "" if token else " (no API token configured)"
            raise AuthError(f"bridge rejected the API token{hint}")
        if response.status_code == 404:
            raise NotFoundError(f"{path} not found on the bridge")
        if response.is_error:
            raise error_cls(f"bridge error {response.status_code}: {_error_text(response)}")

        try:
            return response.json()
        except ValueError as exc:
            raise error_cls(f"{method} {path} returned invalid JSON") from exc

    async def _chats(self) -> list[ChatSummary]:
        data = await self._request("GET", "/chats", FetchError)
        return _validate_list(ChatSummary, data)

    async def send_message(
        self,
        to: str,
        body: str,
        *,
        attachment: Path | None = None,
        scheduled_at: datetime | None = None,
    ) -> SendReceipt:
        if scheduled_at is not None:
            raise UnsupportedOperationError("scheduled sending", BACKEND_NAME)

        if attachment is None:
            data = await self._request(
                "POST", "/send-text", SendError, json={"number": to, "message": body}
            )
            return SendReceipt(to=_field(data, "to", to), body=body)

        mime, _ = mimetypes.guess_type(attachment.name)
        if not mime or not mime.startswith("image/"):
            raise UnsupportedOperationError(f"sending {mime or 'unknown'} attachments", BACKEND_NAME)
        try:
            raw = await asyncio.to_thread(attachment.read_bytes)
        except OSError as exc:
            raise SendError(f"could not read attachment {attachment}: {exc}") from exc

        data = await self._request(
            "POST",
            "/send-image",
            SendError,
            json={
                "number": to,
                "base64": base64.b64encode(raw).decode("ascii"),
                "caption": body,
            },
        )
        return SendReceipt(to=_field(data, "to", to), body=body, attachment=str(attachment))

    async def list_chats(self, query: ChatsList) -> Sequence[ChatSummary]:
        chats = order_chats(await self._chats(), query.order)
        return chats[: query.limit]

    async def fetch_messages(self, target: str, count: int, timestamps: bool) -> Sequence[Message]:
        # `timestamps` only affects rendering; the bridge always sends them.
        if count == 0:
            return []
        data = await self._request(
            "GET",
            f"/messages/{quote(target, safe='@.-_')}",
            FetchError,
            params={"limit": count},
        )
        return _validate_list(Message, data)

    async def chat_info(self, target: str) -> ChatSummary:
        for chat in await self._chats():
            if chat_matches(chat, target):
                return chat
        raise NotFoundError(f"no chat matches {target!r}")

    async def archive_chat(self, target: str) -> None:
        raise UnsupportedOperationError("archiving chats", BACKEND_NAME)

    async def unarchive_chat(self, target: str) -> None:
        raise UnsupportedOperationError("unarchiving chats", BACKEND_NAME)

    async def download_attachment(self, attachment_id: str, out_path: Path) -> Path:
        raise UnsupportedOperationError("downloading attachments", BACKEND_NAME)

    async def login(self) -> SessionHandle:
        token = self._settings.resolve_api_token()
        if not token:
            raise AuthError(
                "no API token configured: set WHATSAPP_CLI_API_TOKEN or point "
                "WHATSAPP_CLI_API_TOKEN_FILE at the bridge's api.token"
            )
        await self._chats()
        return SessionHandle(base_url=self.base_url, token_fingerprint=token_fingerprint(token))

    async def logout(self) -> None:
        raise UnsupportedOperationError("logging out (the session lives in the bridge)", BACKEND_NAME)

    async def status(self) -> SessionStatus:
        try:
            chats = await self._chats()
        except AuthError as exc:
            return SessionStatus(state=SessionState.UNAUTHORIZED, base_url=self.base_url, detail=str(exc))
        except FetchError as exc:
            return SessionStatus(state=SessionState.UNREACHABLE, base_url=self.base_url, detail=str(exc))
        return SessionStatus(
            state=SessionState.CONNECTED,
            base_url=self.base_url,
            detail=f"{len(chats)} chats visible",
        )

    async def search(self, query: str, limit: int) -> Sequence[Message]:
        raise UnsupportedOperationError("message search", BACKEND_NAME)

    async def export(self, target: str, format: str) -> str:
        raise UnsupportedOperationError("chat export", BACKEND_NAME)

    async def list_contacts(self, details: bool) -> Sequence[Contact]:
        return [
            Contact(
                id=chat.id,
                name=chat.name,
                last_message=chat.last_message if details else None,
            )
            for chat in await self._chats()
            if not chat.is_group
        ]


def _validate_list(model: type, data: Any) -> list:
    if not isinstance(data, list):
        raise FetchError(f"expected a JSON list from the bridge, got {type(data).__name__}")
    try:
        return [model.model_validate(item) for item in data]
    except ValidationError as exc:
        raise FetchError(f"unexpected bridge payload: {exc}") from exc


def _field(data: Any, key: str, default: str) -> str:
    if isinstance(data, dict) and isinstance(data.get(key), str):
        return data[key]
    return default


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.reason_phrase
