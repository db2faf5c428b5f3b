"""CLI entry point: parse, dispatch, render.

`parse` is side-effect free apart from `--help`/`--version` output: it runs
the Typer app in non-standalone mode and turns its usage errors into
`GrammarError`. `run` is the process boundary where every error becomes a
message on stderr and an exit status (2 for grammar errors, 1 otherwise).
"""

import asyncio
import importlib
import re
import sys
from typing import Any, Callable, NoReturn, Optional, Sequence

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from adapters.wwebjs_bridge import WwebJsBridgeClient
from cli.commands import app
from cli.ui_components import render_result
from core.config import AppSettings, load_settings
from core.domain.commands import Invocation
from core.errors import EarlyExit, GrammarError, GrammarRule, WhatsAppCliError
from core.grammar import PROG_NAME, hoist_global_flags
from core.interfaces.messaging import MessagingClient
from core.log import setup_logging
from core.services.dispatcher import dispatch

_console = Console()
_error_console = Console(stderr=True)

_QUOTED = re.compile(r"'([^']*)'")
_PARENS = re.compile(r"\(([^)]*)\)")

# Recent typer releases bundle their own click; take the exception classes
# from the module typer's own `BadParameter` lives in.
click_exceptions = importlib.import_module(typer.BadParameter.__module__)


def _param_token(param: Any) -> Optional[str]:
    if param is None:
        return None
    if param.param_type_name == "option" and param.opts:
        return max(param.opts, key=len)
    return param.human_readable_name


def _grammar_error(exc: Any) -> GrammarError:
    """Translate a usage error into the grammar taxonomy."""

    message = exc.format_message()
    if isinstance(exc, click_exceptions.NoSuchOption):
        return GrammarError(GrammarRule.UNKNOWN_FLAG, message, token=exc.option_name)
    if isinstance(exc, click_exceptions.BadOptionUsage):
        return GrammarError(GrammarRule.MISSING_VALUE, message, token=exc.option_name)
    if isinstance(exc, click_exceptions.MissingParameter):
        return GrammarError(GrammarRule.MISSING_VALUE, message, token=_param_token(exc.param))
    if isinstance(exc, click_exceptions.BadParameter):
        return GrammarError(GrammarRule.TYPE_CONVERSION, message, token=_param_token(exc.param))

    if message.startswith("No such command"):
        match = _QUOTED.search(message)
        return GrammarError(GrammarRule.UNKNOWN_COMMAND, message, token=match.group(1) if match else None)
    if message.startswith("Missing command"):
        return GrammarError(GrammarRule.MISSING_VALUE, message, token="COMMAND")
    if message.startswith("Got unexpected extra argument"):
        match = _PARENS.search(message)
        return GrammarError(GrammarRule.UNEXPECTED_ARGUMENT, message, token=match.group(1) if match else None)
    return GrammarError(GrammarRule.UNEXPECTED_ARGUMENT, message)


def parse(argv: Sequence[str]) -> Invocation:
    """Turn raw arguments into a validated `Invocation`.

    Raises `GrammarError` for any grammar violation and `EarlyExit` when
    `--help` or `--version` ended parsing.
    """

    command = typer.main.get_command(app)
    try:
        result = command.main(
            args=hoist_global_flags(argv),
            prog_name=PROG_NAME,
            standalone_mode=False,
        )
    except click_exceptions.UsageError as exc:
        raise _grammar_error(exc) from exc
    except ValidationError as exc:
        first = exc.errors()[0]
        token = ".".join(str(part) for part in first["loc"]) or None
        raise GrammarError(GrammarRule.TYPE_CONVERSION, first["msg"], token=token) from exc

    if isinstance(result, Invocation):
        return result
    if isinstance(result, int):
        raise EarlyExit(result)
    raise EarlyExit(0)


def _fail(message: str, code: int) -> NoReturn:
    _error_console.print(f"[red]error:[/red] {escape(message)}")
    raise SystemExit(code)


def run(
    argv: Optional[Sequence[str]] = None,
    *,
    client_factory: Callable[[AppSettings], MessagingClient] = WwebJsBridgeClient,
) -> None:
    """Process entry point (`whatsapp-cli` script)."""

    args = list(sys.argv[1:] if argv is None else argv)
    try:
        invocation = parse(args)
    except EarlyExit as exc:
        raise SystemExit(exc.code) from None
    except GrammarError as exc:
        _error_console.print(f"[red]error:[/red] {escape(str(exc))}")
        _error_console.print(f"Try '{PROG_NAME} --help' for help.", style="dim")
        raise SystemExit(2) from None

    try:
        settings = load_settings(invocation.config)
        setup_logging(invocation.verbose, settings.log_level)
        result = asyncio.run(dispatch(invocation, client_factory(settings)))
    except WhatsAppCliError as exc:
        _fail(str(exc), 1)

    render_result(_console, invocation, result)
