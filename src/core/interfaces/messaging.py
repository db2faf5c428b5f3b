"""Messaging backend contract.

Why Protocol:
- Structural contract (duck typing) without inheritance, so the bridge adapter
  and test doubles are interchangeable.
- Handlers receive the client explicitly; there is no global instance.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from core.domain.commands import ChatsList
from core.domain.models import (
    ChatSummary,
    Contact,
    Message,
    SendReceipt,
    SessionHandle,
    SessionStatus,
)


@runtime_checkable
class MessagingClient(Protocol):
    """Operations a messaging backend offers to the CLI.

    Design rules:
    - Every method is async because implementations do network I/O.
    - Failures are raised as `core.errors.CollaboratorError` subclasses;
      callers never retry.
    """

    async def send_message(
        self,
        to: str,
        body: str,
        *,
        attachment: Path | None = None,
        scheduled_at: datetime | None = None,
    ) -> SendReceipt: ...

    async def list_chats(self, query: ChatsList) -> Sequence[ChatSummary]: ...

    async def fetch_messages(self, target: str, count: int, timestamps: bool) -> Sequence[Message]: ...

    async def chat_info(self, target: str) -> ChatSummary: ...

    async def archive_chat(self, target: str) -> None: ...

    async def unarchive_chat(self, target: str) -> None: ...

    async def download_attachment(self, attachment_id: str, out_path: Path) -> Path: ...

    async def login(self) -> SessionHandle: ...

    async def logout(self) -> None: ...

    async def status(self) -> SessionStatus: ...

    async def search(self, query: str, limit: int) -> Sequence[Message]: ...

    async def export(self, target: str, format: str) -> str: ...

    async def list_contacts(self, details: bool) -> Sequence[Contact]: ...
