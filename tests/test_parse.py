from __future__ import annotations

import pytest
import typer

from cli.main import click_exceptions, parse
from core.domain.commands import (
    ChatOrder,
    ChatsCommand,
    ChatsInfo,
    ChatsList,
    ChatsPrint,
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
)
from core.errors import EarlyExit, GrammarError, GrammarRule


def test_send_with_message():
    invocation = parse(["send", "34600111222", "hello"])

    assert invocation == Invocation(
        command=SendCommand(request=SendRequest(to="34600111222", message="hello"))
    )
    assert invocation.payload.attach is None
    assert invocation.payload.at is None


def test_send_without_message_leaves_body_unresolved():
    invocation = parse(["send", "bob"])

    assert invocation.payload == SendRequest(to="bob", message=None)


def test_send_with_attachment_and_schedule():
    invocation = parse(["send", "bob", "look", "--attach", "cat.jpg", "--at", "2025-03-01T10:00:00Z"])

    request = invocation.payload
    assert request.attach == "cat.jpg"
    assert request.at == "2025-03-01T10:00:00Z"
    assert request.scheduled_at.utcoffset().total_seconds() == 0


@pytest.mark.parametrize(
    "value",
    [
        "tomorrow",
        "2025-03-01T10:00:00",
        "2025-13-01T10:00:00Z",
        "20250301T100000Z",
        "2025-03-01T10+02:00",
        "2025-03-01 10:00:00Z",
        "2025-03-01T10:00:00+0200",
        "2025-03-01T10:00:00+02:99",
        " 2025-03-01T10:00:00Z",
    ],
)
def test_send_rejects_bad_timestamps(value):
    with pytest.raises(GrammarError) as info:
        parse(["send", "bob", "hi", "--at", value])

    assert info.value.rule is GrammarRule.TYPE_CONVERSION
    assert info.value.token == "--at"


@pytest.mark.parametrize(
    ("value", "microsecond"),
    [("2025-03-01T10:00:00.1Z", 100000), ("2025-03-01t10:00:00.123456789-05:30", 123456)],
)
def test_send_accepts_fractional_seconds(value, microsecond):
    scheduled = parse(["send", "bob", "hi", "--at", value]).payload.scheduled_at

    assert scheduled.microsecond == microsecond
    assert scheduled.second == 0


def test_download_defaults_out_to_current_dir():
    invocation = parse(["download", "ABC123"])

    assert invocation.command == DownloadCommand(
        request=DownloadRequest(attachment_id="ABC123", out=".")
    )


def test_download_with_out():
    assert parse(["download", "ABC123", "-o", "/tmp/x"]).payload.out == "/tmp/x"


def test_chats_print():
    invocation = parse(["chats", "print", "alice", "--count", "10", "--timestamps"])

    assert invocation.payload == ChatsPrint(target="alice", count=10, timestamps=True)


def test_chats_print_defaults():
    assert parse(["chats", "print", "alice"]).payload == ChatsPrint(target="alice", count=100)


def test_chats_list_defaults():
    query = parse(["chats", "list"]).payload

    assert query == ChatsList(details=False, limit=50, order=ChatOrder.REVERSE_CHRONOLOGICAL)


@pytest.mark.parametrize(
    ("flag", "order"),
    [
        ("--chronological-order", ChatOrder.CHRONOLOGICAL),
        ("-c", ChatOrder.CHRONOLOGICAL),
        ("--reverse-chronological-order", ChatOrder.REVERSE_CHRONOLOGICAL),
        ("-a", ChatOrder.ALPHABETICAL),
    ],
)
def test_chats_list_single_ordering_flag(flag, order):
    assert parse(["chats", "list", flag]).payload.order is order


@pytest.mark.parametrize(
    "flags",
    [
        ["-c", "-r"],
        ["--chronological-order", "--alphabetical-order"],
        ["-c", "-r", "-a"],
    ],
)
def test_chats_list_conflicting_ordering_flags(flags):
    with pytest.raises(GrammarError) as info:
        parse(["chats", "list", *flags])

    error = info.value
    assert error.rule is GrammarRule.EXCLUSIVE_CONFLICT
    assert len(error.token.split()) == len(flags)


@pytest.mark.parametrize("flags", [["-c", "-c"], ["-a", "--alphabetical-order"], ["-rr"]])
def test_chats_list_repeated_ordering_flag(flags):
    with pytest.raises(GrammarError) as info:
        parse(["chats", "list", *flags])

    assert info.value.rule is GrammarRule.EXCLUSIVE_CONFLICT
    assert "multiple times" in str(info.value)


def test_conflict_message_names_flags():
    with pytest.raises(GrammarError) as info:
        parse(["chats", "list", "-r", "-a"])

    assert "--reverse-chronological-order" in str(info.value)
    assert "--alphabetical-order" in str(info.value)


@pytest.mark.parametrize(
    "argv",
    [
        ["chats", "list", "--limit=-1"],
        ["chats", "list", "--limit", "many"],
        ["chats", "print", "alice", "--count=-5"],
        ["chats", "print", "alice", "--count", "1.5"],
        ["misc", "search", "x", "--limit=-3"],
    ],
)
def test_numeric_options_must_be_non_negative_integers(argv):
    with pytest.raises(GrammarError) as info:
        parse(argv)

    assert info.value.rule is GrammarRule.TYPE_CONVERSION
    assert info.value.token in ("--limit", "--count")


def test_limit_zero_is_valid():
    assert parse(["chats", "list", "--limit", "0"]).payload.limit == 0


def test_unknown_flag():
    with pytest.raises(GrammarError) as info:
        parse(["chats", "list", "--bogus"])

    assert info.value.rule is GrammarRule.UNKNOWN_FLAG
    assert info.value.token == "--bogus"


def test_usage_errors_match_the_click_typer_runs_on():
    assert issubclass(typer.BadParameter, click_exceptions.UsageError)
    assert issubclass(click_exceptions.NoSuchOption, click_exceptions.UsageError)


def test_unknown_command():
    with pytest.raises(GrammarError) as info:
        parse(["frobnicate"])

    assert info.value.rule is GrammarRule.UNKNOWN_COMMAND
    assert info.value.token == "frobnicate"


def test_missing_required_argument():
    with pytest.raises(GrammarError) as info:
        parse(["send"])

    assert info.value.rule is GrammarRule.MISSING_VALUE
    assert info.value.token == "TO"


def test_missing_option_value():
    with pytest.raises(GrammarError) as info:
        parse(["download", "ABC", "--out"])

    assert info.value.rule is GrammarRule.MISSING_VALUE
    assert info.value.token == "--out"


def test_extra_argument():
    with pytest.raises(GrammarError) as info:
        parse(["chats", "info", "alice", "bob"])

    assert info.value.rule is GrammarRule.UNEXPECTED_ARGUMENT


def test_missing_command():
    with pytest.raises(GrammarError) as info:
        parse([])

    assert info.value.rule is GrammarRule.MISSING_VALUE


def test_global_flags():
    invocation = parse(["--config", "other.env", "-v", "session", "status"])

    assert invocation.verbose is True
    assert invocation.config == "other.env"
    assert invocation.command == SessionCommand(action=SessionAction.STATUS)


def test_verbose_accepted_after_subcommand():
    invocation = parse(["chats", "info", "alice", "--verbose"])

    assert invocation.verbose is True
    assert invocation.payload == ChatsInfo(target="alice")


def test_verbose_after_double_dash_is_positional():
    invocation = parse(["send", "--", "bob", "-v"])

    assert invocation.verbose is False
    assert invocation.payload.message == "-v"


def test_misc_defaults():
    assert parse(["misc", "search", "pizza"]).payload == MiscSearch(query="pizza", limit=50)
    assert parse(["misc", "export", "alice"]).payload == MiscExport(target="alice", format="json")
    assert parse(["misc", "contacts", "--details"]).command == MiscCommand(
        action=MiscContacts(details=True)
    )


@pytest.mark.parametrize("action", ["login", "logout", "status"])
def test_session_actions(action):
    assert parse(["session", action]).payload is SessionAction(action)


@pytest.mark.parametrize("flag", ["--help", "--version"])
def test_help_and_version_exit_early(flag, capsys):
    with pytest.raises(EarlyExit) as info:
        parse([flag])

    assert info.value.code == 0
    assert capsys.readouterr().out


def test_chats_command_wraps_query():
    invocation = parse(["chats", "list", "-d", "-l", "5"])

    assert isinstance(invocation.command, ChatsCommand)
    assert invocation.payload.details is True
    assert invocation.payload.limit == 5
