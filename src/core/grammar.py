"""Declarative command grammar.

Why here (and not in the Typer app):
- Flag names, defaults and exclusive groups are the public contract of the
  CLI; keeping them in the Core lets the parser, the canonical serializer and
  the tests share one source of truth.
- Nothing in this module depends on a parsing library. `cli.commands` builds
  the Typer surface from these declarations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

from core.domain.commands import (
    DEFAULT_DOWNLOAD_OUT,
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_LIST_LIMIT,
    DEFAULT_PRINT_COUNT,
    ChatOrder,
    ChatsArchive,
    ChatsCommand,
    ChatsInfo,
    ChatsList,
    ChatsPrint,
    ChatsUnarchive,
    DownloadCommand,
    Invocation,
    MiscCommand,
    MiscContacts,
    MiscExport,
    MiscSearch,
    SendCommand,
    SessionCommand,
)
from core.errors import GrammarError, GrammarRule

T = TypeVar("T")

PROG_NAME = "whatsapp-cli"
TOP_LEVEL_COMMANDS = ("chats", "send", "download", "session", "misc")


@dataclass(frozen=True)
class OptionSpec:
    """One declared option: its spellings, help text and default."""

    long: str
    short: str | None = None
    help: str = ""
    default: Any = None
    metavar: str | None = None

    @property
    def decls(self) -> tuple[str, ...]:
        return (self.long, self.short) if self.short else (self.long,)

    @property
    def takes_value(self) -> bool:
        return self.metavar is not None

    def render(self, value: Any) -> str:
        """Canonical `--long=value` spelling, safe for values starting with '-'."""

        return f"{self.long}={value}"


@dataclass(frozen=True)
class ExclusiveGroup(Generic[T]):
    """Flags of which at most one may be set, at most once.

    Each member flag selects a value; `default` is called when none is set, so
    every group always resolves to exactly one value.
    """

    name: str
    members: tuple[tuple[OptionSpec, T], ...]
    default: Callable[[], T]

    @property
    def flags(self) -> tuple[str, ...]:
        return tuple(spec.long for spec, _ in self.members)

    def resolve(self, selected: Mapping[str, int]) -> T:
        """Pick the value of the single selected flag, or the default.

        `selected` maps long flag names to how often each was given (a bool
        counts as 0 or 1). A flag given twice is rejected like two members.
        """

        for spec, _ in self.members:
            if selected.get(spec.long, 0) > 1:
                raise GrammarError(
                    GrammarRule.EXCLUSIVE_CONFLICT,
                    f"option {spec.long} cannot be used multiple times ({self.name})",
                    token=spec.long,
                )
        chosen = [(spec, value) for spec, value in self.members if selected.get(spec.long)]
        if len(chosen) > 1:
            names = [spec.long for spec, _ in chosen]
            raise GrammarError(
                GrammarRule.EXCLUSIVE_CONFLICT,
                f"options {', '.join(names)} cannot be used together ({self.name})",
                token=" ".join(names),
            )
        if not chosen:
            return self.default()
        return chosen[0][1]

    def flag_for(self, value: T) -> str:
        for spec, member_value in self.members:
            if member_value == value:
                return spec.long
        raise KeyError(f"{value!r} is not a member of group {self.name!r}")


# Global options
VERBOSE = OptionSpec("--verbose", "-v", "Enable verbose output", False)
CONFIG = OptionSpec("--config", "-c", "Use a different config file", None, "FILE")

# chats
LIST_DETAILS = OptionSpec("--details", "-d", "Show group flag and last message", False)
LIST_LIMIT = OptionSpec("--limit", "-l", "How many chats to print", DEFAULT_LIST_LIMIT, "N")
ORDER_CHRONOLOGICAL = OptionSpec("--chronological-order", "-c", "Chronological order", False)
ORDER_REVERSE = OptionSpec(
    "--reverse-chronological-order", "-r", "Reverse chronological order (default)", False
)
ORDER_ALPHABETICAL = OptionSpec("--alphabetical-order", "-a", "Alphabetical order", False)
PRINT_COUNT = OptionSpec("--count", "-n", "How many messages to print", DEFAULT_PRINT_COUNT, "N")
PRINT_TIMESTAMPS = OptionSpec("--timestamps", "-t", "Show message timestamps", False)

# send / download
SEND_ATTACH = OptionSpec("--attach", None, "File to attach", None, "FILE")
SEND_AT = OptionSpec("--at", None, "Schedule delivery (RFC3339 timestamp)", None, "TIME")
DOWNLOAD_OUT = OptionSpec("--out", "-o", "Output path", DEFAULT_DOWNLOAD_OUT, "PATH")

# misc
SEARCH_LIMIT = OptionSpec("--limit", "-l", "Maximum number of results", DEFAULT_LIST_LIMIT, "N")
EXPORT_FORMAT = OptionSpec("--format", "-f", "Export format", DEFAULT_EXPORT_FORMAT, "FMT")
CONTACTS_DETAILS = OptionSpec("--details", "-d", "Show last message per contact", False)

ORDERING: ExclusiveGroup[ChatOrder] = ExclusiveGroup(
    name="ordering",
    members=(
        (ORDER_CHRONOLOGICAL, ChatOrder.CHRONOLOGICAL),
        (ORDER_REVERSE, ChatOrder.REVERSE_CHRONOLOGICAL),
        (ORDER_ALPHABETICAL, ChatOrder.ALPHABETICAL),
    ),
    default=ChatOrder.default,
)

_GLOBAL_FLAGS = frozenset(VERBOSE.decls)


def hoist_global_flags(argv: Sequence[str]) -> list[str]:
    """Move global boolean flags to the front so they work after a subcommand.

    Scanning stops at `--`; tokens after it are always positional.
    """

    hoisted: list[str] = []
    rest: list[str] = []
    for index, token in enumerate(argv):
        if token == "--":
            rest.extend(argv[index:])
            break
        if token in _GLOBAL_FLAGS:
            if VERBOSE.long not in hoisted:
                hoisted.append(VERBOSE.long)
            continue
        rest.append(token)
    return hoisted + rest


def _positionals(*values: str) -> list[str]:
    if any(value.startswith("-") for value in values):
        return ["--", *values]
    return list(values)


def _chats_argv(command: ChatsCommand) -> list[str]:
    query = command.query
    if isinstance(query, ChatsList):
        argv = [query.action]
        if query.details:
            argv.append(LIST_DETAILS.long)
        argv.append(LIST_LIMIT.render(query.limit))
        argv.append(ORDERING.flag_for(query.order))
        return argv
    if isinstance(query, ChatsPrint):
        argv = [query.action, PRINT_COUNT.render(query.count)]
        if query.timestamps:
            argv.append(PRINT_TIMESTAMPS.long)
        return argv + _positionals(query.target)
    if isinstance(query, (ChatsInfo, ChatsArchive, ChatsUnarchive)):
        return [query.action, *_positionals(query.target)]
    raise TypeError(f"unknown chats query: {type(query).__name__}")


def _misc_argv(command: MiscCommand) -> list[str]:
    action = command.action
    if isinstance(action, MiscSearch):
        return [action.action, SEARCH_LIMIT.render(action.limit), *_positionals(action.query)]
    if isinstance(action, MiscExport):
        return [action.action, EXPORT_FORMAT.render(action.format), *_positionals(action.target)]
    if isinstance(action, MiscContacts):
        return [action.action, CONTACTS_DETAILS.long] if action.details else [action.action]
    raise TypeError(f"unknown misc action: {type(action).__name__}")


def to_argv(invocation: Invocation) -> list[str]:
    """Render an invocation in canonical argument form.

    Every field is spelled out explicitly (defaults included), value options
    use the `--long=value` form and positionals that look like flags are
    placed after `--`. Parsing the result yields an equal `Invocation`.
    """

    argv: list[str] = []
    if invocation.verbose:
        argv.append(VERBOSE.long)
    if invocation.config is not None:
        argv.append(CONFIG.render(invocation.config))

    command = invocation.command
    argv.append(command.kind)

    if isinstance(command, ChatsCommand):
        argv.extend(_chats_argv(command))
    elif isinstance(command, SendCommand):
        request = command.request
        if request.attach is not None:
            argv.append(SEND_ATTACH.render(request.attach))
        if request.at is not None:
            argv.append(SEND_AT.render(request.at))
        values = [request.to] if request.message is None else [request.to, request.message]
        argv.extend(_positionals(*values))
    elif isinstance(command, DownloadCommand):
        request = command.request
        argv.append(DOWNLOAD_OUT.render(request.out))
        argv.extend(_positionals(request.attachment_id))
    elif isinstance(command, SessionCommand):
        argv.append(command.action.value)
    elif isinstance(command, MiscCommand):
        argv.extend(_misc_argv(command))
    else:
        raise TypeError(f"unknown command: {type(command).__name__}")
    return argv
