"""Parsed invocation values (Pydantic v2).

Why nested tagged unions:
- Each command variant carries only the fields it needs, so handlers never
  check optional fields that belong to another command.
- `kind`/`action` discriminators make the active variant explicit and keep
  equality structural, which the canonical round-trip relies on.

All models are frozen: an invocation is built once by the parser, consumed
once by the dispatcher and discarded.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

DEFAULT_LIST_LIMIT = 50
DEFAULT_PRINT_COUNT = 100
DEFAULT_DOWNLOAD_OUT = "."
DEFAULT_EXPORT_FORMAT = "json"

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(?P<fraction>\d+))?"
    r"(?:[Zz]|(?P<sign>[+-])(?P<offset_hours>\d{2}):(?P<offset_minutes>\d{2}))",
    re.ASCII,
)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 `date-time`; an explicit UTC offset (or `Z`) is required."""

    match = _RFC3339.fullmatch(value)
    if match is None:
        raise ValueError(f"timestamp {value!r} is not an RFC3339 date-time")
    year, month, day, hour, minute, second = (int(part) for part in match.group(1, 2, 3, 4, 5, 6))
    # Sub-microsecond digits are dropped.
    microsecond = int((match["fraction"] or "")[:6].ljust(6, "0"))
    if match["sign"]:
        offset_hours, offset_minutes = int(match["offset_hours"]), int(match["offset_minutes"])
        if offset_hours > 23 or offset_minutes > 59:
            raise ValueError(f"timestamp {value!r} has an invalid UTC offset")
        offset = timedelta(hours=offset_hours, minutes=offset_minutes)
        tz = timezone(-offset if match["sign"] == "-" else offset)
    else:
        tz = timezone.utc
    return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=tz)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ChatOrder(str, Enum):
    """Ordering applied to `chats list`."""

    CHRONOLOGICAL = "chronological"
    REVERSE_CHRONOLOGICAL = "reverse-chronological"
    ALPHABETICAL = "alphabetical"

    @classmethod
    def default(cls) -> "ChatOrder":
        return cls.REVERSE_CHRONOLOGICAL


class ChatsList(_Frozen):
    action: Literal["list"] = "list"
    details: bool = False
    limit: int = Field(default=DEFAULT_LIST_LIMIT, ge=0)
    order: ChatOrder = Field(default_factory=ChatOrder.default)


class ChatsPrint(_Frozen):
    action: Literal["print"] = "print"
    target: str = Field(..., min_length=1)
    count: int = Field(default=DEFAULT_PRINT_COUNT, ge=0)
    timestamps: bool = False


class ChatsInfo(_Frozen):
    action: Literal["info"] = "info"
    target: str = Field(..., min_length=1)


class ChatsArchive(_Frozen):
    action: Literal["archive"] = "archive"
    target: str = Field(..., min_length=1)


class ChatsUnarchive(_Frozen):
    action: Literal["unarchive"] = "unarchive"
    target: str = Field(..., min_length=1)


ChatsQuery = Annotated[
    Union[ChatsList, ChatsPrint, ChatsInfo, ChatsArchive, ChatsUnarchive],
    Field(discriminator="action"),
]


class SendRequest(_Frozen):
    """A message to deliver.

    `message=None` means "not given on the command line"; the dispatcher then
    reads the body from standard input. An empty string is a valid body.
    """

    to: str = Field(..., min_length=1)
    message: str | None = None
    attach: str | None = None
    at: str | None = Field(
        default=None,
        description="Scheduled delivery time, RFC3339 with offset.",
    )

    @field_validator("at")
    @classmethod
    def _check_at(cls, value: str | None) -> str | None:
        if value is not None:
            parse_rfc3339(value)
        return value

    @property
    def scheduled_at(self) -> datetime | None:
        return parse_rfc3339(self.at) if self.at is not None else None


class DownloadRequest(_Frozen):
    attachment_id: str = Field(..., min_length=1)
    out: str = DEFAULT_DOWNLOAD_OUT


class SessionAction(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    STATUS = "status"


class MiscSearch(_Frozen):
    action: Literal["search"] = "search"
    query: str
    limit: int = Field(default=DEFAULT_LIST_LIMIT, ge=0)


class MiscExport(_Frozen):
    action: Literal["export"] = "export"
    target: str = Field(..., min_length=1)
    format: str = Field(default=DEFAULT_EXPORT_FORMAT, min_length=1)


class MiscContacts(_Frozen):
    action: Literal["contacts"] = "contacts"
    details: bool = False


MiscAction = Annotated[
    Union[MiscSearch, MiscExport, MiscContacts],
    Field(discriminator="action"),
]


class ChatsCommand(_Frozen):
    kind: Literal["chats"] = "chats"
    query: ChatsQuery


class SendCommand(_Frozen):
    kind: Literal["send"] = "send"
    request: SendRequest


class DownloadCommand(_Frozen):
    kind: Literal["download"] = "download"
    request: DownloadRequest


class SessionCommand(_Frozen):
    kind: Literal["session"] = "session"
    action: SessionAction


class MiscCommand(_Frozen):
    kind: Literal["misc"] = "misc"
    action: MiscAction


Command = Annotated[
    Union[ChatsCommand, SendCommand, DownloadCommand, SessionCommand, MiscCommand],
    Field(discriminator="kind"),
]


class Invocation(_Frozen):
    """One fully parsed and validated command-line call."""

    verbose: bool = False
    config: str | None = None
    command: Command

    @property
    def payload(self) -> object:
        """The innermost request value a handler receives."""

        command = self.command
        if isinstance(command, ChatsCommand):
            return command.query
        if isinstance(command, (SendCommand, DownloadCommand)):
            return command.request
        return command.action
