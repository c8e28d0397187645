"""Classified error taxonomy shared by every lifecycle stage.

Three kinds drive the reporting path in :mod:`monoctl.services.lifecycle`:

- ``VALIDATION``: pre-execution contract violation. Short code + message,
  never a stack dump, never a diagnostic log file.
- ``PACKAGE``: failure of one package's script/process. Carries the package
  and the captured output; reported with package-scoped formatting.
- ``UNCLASSIFIED``: anything else, including exceptions that are not
  :class:`MonoctlError` at all.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from monoctl.domain.package import Package
    from monoctl.infrastructure.process import ProcessResult


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    PACKAGE = "package"
    UNCLASSIFIED = "unclassified"


class MonoctlError(Exception):
    """Base for classified errors.

    Attributes:
        code: Short machine-readable code (e.g. ``"ENOGIT"``).
        message: Human-readable description.
    """

    kind: ErrorKind = ErrorKind.UNCLASSIFIED

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(MonoctlError):
    """A precondition of the command was not met."""

    kind = ErrorKind.VALIDATION


class ProcessFailedError(MonoctlError):
    """A child process exited nonzero (or overflowed its output buffer)."""

    def __init__(self, result: ProcessResult, message: str | None = None) -> None:
        super().__init__(
            "EPROCESS",
            message or f"Command failed with exit code {result.exit_code}: {result.command_line}",
        )
        self.result = result

    @property
    def exit_code(self) -> int:
        return self.result.exit_code

    @property
    def command(self) -> str:
        return self.result.command

    @property
    def command_line(self) -> str:
        return self.result.command_line

    @property
    def stdout(self) -> str:
        return self.result.stdout

    @property
    def stderr(self) -> str:
        return self.result.stderr


class PackageError(ProcessFailedError):
    """A child process failure attributable to a single package."""

    kind = ErrorKind.PACKAGE

    def __init__(
        self,
        result: ProcessResult,
        pkg: Package,
        message: str | None = None,
    ) -> None:
        super().__init__(result, message)
        self.pkg = pkg


def classify(exc: BaseException) -> ErrorKind:
    """Return the reporting kind for *exc*.

    Anything carrying a package identity is package-scoped, even when it is
    not a :class:`PackageError` subclass.
    """
    if getattr(exc, "pkg", None) is not None:
        return ErrorKind.PACKAGE
    if isinstance(exc, MonoctlError):
        return exc.kind
    return ErrorKind.UNCLASSIFIED
