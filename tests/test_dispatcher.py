from __future__ import annotations

import asyncio
import io
from pathlib import Path

import pytest

from cli.main import parse
from core.domain.models import SendReceipt, SessionHandle, SessionStatus
from core.errors import InputError, NotFoundError
from core.services.dispatcher import HANDLERS, dispatch, read_message_body


def run_dispatch(argv, client, stdin=None):
    return asyncio.run(dispatch(parse(argv), client, stdin=stdin))


class BrokenStream(io.StringIO):
    def read(self, *args):
        raise OSError("stream closed")


def test_send_with_message_does_not_touch_stdin(fake_client):
    receipt = run_dispatch(["send", "bob", "hello"], fake_client, stdin=BrokenStream())

    assert receipt == SendReceipt(to="bob", body="hello")
    assert fake_client.calls == [
        ("send_message", ("bob", "hello"), {"attachment": None, "scheduled_at": None})
    ]


def test_send_reads_body_from_stdin(fake_client):
    run_dispatch(["send", "bob"], fake_client, stdin=io.StringIO("line one\nline two\n"))

    name, args, _ = fake_client.calls[0]
    assert name == "send_message"
    assert args == ("bob", "line one\nline two\n")


def test_send_with_empty_stdin_sends_empty_body(fake_client):
    receipt = run_dispatch(["send", "bob"], fake_client, stdin=io.StringIO(""))

    assert receipt.body == ""
    assert fake_client.calls[0][1] == ("bob", "")


def test_stdin_failure_is_input_error(fake_client):
    with pytest.raises(InputError):
        run_dispatch(["send", "bob"], fake_client, stdin=BrokenStream())

    assert fake_client.calls == []


def test_read_message_body_returns_whole_stream():
    assert asyncio.run(read_message_body(io.StringIO("abc"))) == "abc"


def test_send_passes_attachment_and_schedule(fake_client):
    run_dispatch(
        ["send", "bob", "pic", "--attach", "cat.png", "--at", "2025-03-01T10:00:00+01:00"],
        fake_client,
    )

    _, _, kwargs = fake_client.calls[0]
    assert kwargs["attachment"] == Path("cat.png")
    assert kwargs["scheduled_at"].isoformat() == "2025-03-01T10:00:00+01:00"


@pytest.mark.parametrize(
    ("argv", "expected_call"),
    [
        (["chats", "print", "alice", "-n", "10", "-t"], ("fetch_messages", ("alice", 10, True))),
        (["chats", "info", "alice"], ("chat_info", ("alice",))),
        (["chats", "archive", "alice"], ("archive_chat", ("alice",))),
        (["chats", "unarchive", "alice"], ("unarchive_chat", ("alice",))),
        (["download", "ABC123"], ("download_attachment", ("ABC123", Path(".")))),
        (["session", "logout"], ("logout", ())),
        (["misc", "search", "pizza"], ("search", ("pizza", 50))),
        (["misc", "export", "alice", "-f", "txt"], ("export", ("alice", "txt"))),
        (["misc", "contacts"], ("list_contacts", (False,))),
    ],
)
def test_each_command_calls_exactly_one_operation(fake_client, argv, expected_call):
    run_dispatch(argv, fake_client)

    assert [(name, args) for name, args, _ in fake_client.calls] == [expected_call]


def test_chats_list_passes_query(fake_client):
    chats = run_dispatch(["chats", "list", "--limit", "1", "-a"], fake_client)

    assert len(chats) == 1
    query = fake_client.calls[0][1][0]
    assert query.limit == 1
    assert query.order.value == "alphabetical"


def test_session_results(fake_client):
    assert isinstance(run_dispatch(["session", "login"], fake_client), SessionHandle)
    assert isinstance(run_dispatch(["session", "status"], fake_client), SessionStatus)


def test_collaborator_errors_propagate_unchanged(fake_client):
    async def missing(target):
        raise NotFoundError(f"no chat matches {target!r}")

    fake_client.chat_info = missing

    with pytest.raises(NotFoundError, match="ghost"):
        run_dispatch(["chats", "info", "ghost"], fake_client)


def test_every_payload_type_has_a_handler():
    assert len(HANDLERS) == 11
