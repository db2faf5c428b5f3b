"""Error taxonomy shared by the grammar, the dispatcher and adapters.

Why a single hierarchy:
- The CLI boundary catches `WhatsAppCliError` once and maps each family to an
  exit status, without knowing about httpx, click or pydantic.
- Adapters translate their transport failures into `CollaboratorError`
  subclasses; the dispatcher propagates them untouched.
"""

from __future__ import annotations

from enum import Enum


class WhatsAppCliError(Exception):
    """Base class for every error surfaced to the user."""


class GrammarRule(str, Enum):
    """Grammar rule violated by an invocation."""

    UNKNOWN_COMMAND = "unknown-command"
    UNKNOWN_FLAG = "unknown-flag"
    MISSING_VALUE = "missing-value"
    EXCLUSIVE_CONFLICT = "exclusive-conflict"
    TYPE_CONVERSION = "type-conversion"
    UNEXPECTED_ARGUMENT = "unexpected-argument"


class GrammarError(WhatsAppCliError):
    """The argument list does not match the command grammar.

    `token` is the offending argument (flag, command or parameter name) when
    it can be identified.
    """

    def __init__(self, rule: GrammarRule, message: str, *, token: str | None = None) -> None:
        super().__init__(message)
        self.rule = rule
        self.message = message
        self.token = token

    def __str__(self) -> str:
        if self.token:
            return f"{self.message} [{self.rule.value}: {self.token}]"
        return f"{self.message} [{self.rule.value}]"


class EarlyExit(WhatsAppCliError):
    """Parsing stopped on purpose (`--help`, `--version`)."""

    def __init__(self, code: int = 0) -> None:
        super().__init__(f"exit {code}")
        self.code = code


class InputError(WhatsAppCliError):
    """Reading the message body from standard input failed."""


class ConfigError(WhatsAppCliError):
    """Settings could not be loaded from the environment or `--config`."""


class CollaboratorError(WhatsAppCliError):
    """Failure reported by a `MessagingClient` implementation."""


class SendError(CollaboratorError):
    pass


class FetchError(CollaboratorError):
    pass


class DownloadError(CollaboratorError):
    pass


class AuthError(CollaboratorError):
    pass


class NotFoundError(CollaboratorError):
    pass


class UnsupportedOperationError(CollaboratorError):
    """The backend has no way to perform the requested operation."""

    def __init__(self, operation: str, backend: str) -> None:
        super().__init__(f"{operation} is not supported by {backend}")
        self.operation = operation
        self.backend = backend
