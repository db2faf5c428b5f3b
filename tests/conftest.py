from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from core.domain.commands import ChatsList
from core.domain.models import (
    ChatSummary,
    Contact,
    Message,
    SendReceipt,
    SessionHandle,
    SessionState,
    SessionStatus,
)
from core.interfaces.messaging import MessagingClient


class FakeMessagingClient(MessagingClient):
    """Records every call and answers with canned values."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.chats = [
            ChatSummary(id="34600111222@c.us", name="Alice", last_message="hi"),
            ChatSummary(id="1203630@g.us", name="Family", is_group=True),
        ]

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        self.calls.append((name, args, kwargs))

    async def send_message(
        self,
        to: str,
        body: str,
        *,
        attachment: Path | None = None,
        scheduled_at: datetime | None = None,
    ) -> SendReceipt:
        self._record("send_message", to, body, attachment=attachment, scheduled_at=scheduled_at)
        return SendReceipt(to=to, body=body)

    async def list_chats(self, query: ChatsList):
        self._record("list_chats", query)
        return self.chats[: query.limit]

    async def fetch_messages(self, target: str, count: int, timestamps: bool):
        self._record("fetch_messages", target, count, timestamps)
        return [Message(id="m1", sender=target, body="hello", timestamp=1_700_000_000)]

    async def chat_info(self, target: str) -> ChatSummary:
        self._record("chat_info", target)
        return self.chats[0]

    async def archive_chat(self, target: str) -> None:
        self._record("archive_chat", target)

    async def unarchive_chat(self, target: str) -> None:
        self._record("unarchive_chat", target)

    async def download_attachment(self, attachment_id: str, out_path: Path) -> Path:
        self._record("download_attachment", attachment_id, out_path)
        return out_path / attachment_id

    async def login(self) -> SessionHandle:
        self._record("login")
        return SessionHandle(base_url="http://bridge", token_fingerprint="abc123")

    async def logout(self) -> None:
        self._record("logout")

    async def status(self) -> SessionStatus:
        self._record("status")
        return SessionStatus(state=SessionState.CONNECTED, base_url="http://bridge", detail="2 chats visible")

    async def search(self, query: str, limit: int):
        self._record("search", query, limit)
        return []

    async def export(self, target: str, format: str) -> str:
        self._record("export", target, format)
        return '{"chat": "%s"}' % target

    async def list_contacts(self, details: bool):
        self._record("list_contacts", details)
        return [Contact(id="34600111222@c.us", name="Alice")]


@pytest.fixture
def fake_client() -> FakeMessagingClient:
    return FakeMessagingClient()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep developer `.env` files and WHATSAPP_CLI_* variables out of tests."""

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in list(os.environ):
        if key.startswith("WHATSAPP_CLI_"):
            monkeypatch.delenv(key, raising=False)
