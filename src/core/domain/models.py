"""Domain models returned by a messaging backend (Pydantic v2).

Why Pydantic in the domain:
- Bridge payloads are loosely typed JSON; validating them at the edge keeps
  handlers and renderers free of `dict.get` chains.
- Aliases map the bridge's camelCase keys without leaking them into the Core.

Note:
- These models describe *what* a chat or message is, not *how* it is fetched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class ChatSummary(BaseModel):
    """One entry of the chat list."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Serialized chat id (e.g. '34600111222@c.us' or a group id).",
    )
    name: str | None = Field(
        default=None,
        description="Display name; groups and saved contacts usually have one.",
    )
    is_group: bool = Field(
        default=False,
        alias="isGroup",
        description="True for group chats.",
    )
    last_message: str | None = Field(
        default=None,
        alias="lastMessage",
        description="Body of the most recent message, when the backend provides it.",
    )

    @property
    def label(self) -> str:
        return self.name or self.id


class Message(BaseModel):
    """A message inside a chat."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., description="Backend message id.")
    sender: str = Field(
        ...,
        alias="from",
        description="Chat id of the author.",
    )
    body: str = Field(default="", description="Text content (caption for media).")
    timestamp: int = Field(
        default=0,
        ge=0,
        description="Unix epoch seconds.",
    )
    has_media: bool = Field(default=False, alias="hasmedia")
    is_group_msg: bool = Field(default=False, alias="isGroupMsg")

    @property
    def sent_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class Contact(BaseModel):
    """A person the account has a one-to-one chat with."""

    id: str = Field(..., min_length=1)
    name: str | None = None
    last_message: str | None = None

    @property
    def number(self) -> str:
        return self.id.split("@", 1)[0]


class SendReceipt(BaseModel):
    """Acknowledgement returned after a message is handed to the backend."""

    to: str = Field(..., description="Normalised chat id the backend delivered to.")
    body: str = Field(default="")
    message_id: str | None = Field(
        default=None,
        description="Backend message id, when the backend reports one.",
    )
    attachment: str | None = None


class SessionState(str, Enum):
    CONNECTED = "connected"
    UNAUTHORIZED = "unauthorized"
    UNREACHABLE = "unreachable"


class SessionHandle(BaseModel):
    """Proof that the backend accepted our credentials."""

    base_url: str
    token_fingerprint: str = Field(
        ...,
        description="Short, non-reversible digest of the API token for display.",
    )


class SessionStatus(BaseModel):
    state: SessionState
    base_url: str
    detail: str = ""
