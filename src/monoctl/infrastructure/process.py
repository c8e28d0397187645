"""Child-process primitives: sync probe, captured async, streaming async.

All three share :class:`ProcessResult`. The sync form only reports an exit
status and never raises; the async forms raise on failure unless called
with ``reject=False``. When a package is passed the raised error is a
:class:`~monoctl.domain.errors.PackageError` so it is reported per package.
"""

from __future__ import annotations

import asyncio
import codecs
import itertools
import logging
import shlex
import subprocess
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import click

from monoctl.config.logging import SILLY
from monoctl.domain.errors import PackageError, ProcessFailedError

if TYPE_CHECKING:
    from monoctl.domain.package import Package

logger = logging.getLogger(__name__)

# Conventional shell status for "command not found".
MISSING_BINARY_EXIT = 127

# Longest streamed line forwarded as one piece.
_STREAM_LIMIT = 1024 * 1024
_READ_SIZE = 64 * 1024

_COLOR_WHEEL = itertools.cycle(["cyan", "magenta", "blue", "yellow", "green", "red"])


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one child process.

    Attributes:
        command: Executable that was launched.
        args: Its arguments.
        exit_code: Process exit status.
        stdout: Captured stdout (empty when streamed).
        stderr: Captured stderr (empty when streamed).
        buffer_exceeded: Output was larger than the allowed buffer and was cut.
    """

    command: str
    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    buffer_exceeded: bool = False

    @property
    def failed(self) -> bool:
        return self.exit_code != 0 or self.buffer_exceeded

    @property
    def command_line(self) -> str:
        return shlex.join([self.command, *self.args])


def run_sync(
    command: str,
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run to completion and return only the exit status.

    No stdio is attached. A binary that cannot be started reports
    :data:`MISSING_BINARY_EXIT` instead of raising.
    """
    logger.log(SILLY, "run_sync %s", shlex.join([command, *args]))
    try:
        completed = subprocess.run(
            [command, *args],
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        logger.debug("%s could not be started: %s", command, exc)
        return MISSING_BINARY_EXIT
    return completed.returncode


async def run_captured(
    command: str,
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    max_buffer: int | None = None,
    reject: bool = True,
    pkg: Package | None = None,
) -> ProcessResult:
    """Run and capture stdout/stderr.

    Args:
        max_buffer: Largest number of bytes kept per stream. Larger output is
            truncated and the result is marked failed.
        reject: Raise on failure; when False the failed result is returned.
        pkg: Package the process runs for (makes failures package-scoped).
    """
    logger.log(SILLY, "run_captured %s", shlex.join([command, *args]))
    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        result = ProcessResult(command, tuple(args), MISSING_BINARY_EXIT, stderr=str(exc))
        return _settle(result, reject=reject, pkg=pkg)

    try:
        out, err = await proc.communicate()
    finally:
        await _reap(proc)
    exceeded = False
    if max_buffer is not None and (len(out) > max_buffer or len(err) > max_buffer):
        exceeded = True
        out, err = out[:max_buffer], err[:max_buffer]

    result = ProcessResult(
        command,
        tuple(args),
        proc.returncode if proc.returncode is not None else 1,
        stdout=_decode(out),
        stderr=_decode(err),
        buffer_exceeded=exceeded,
    )
    return _settle(result, reject=reject, pkg=pkg)


async def run_streaming(
    command: str,
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    prefix: str | None = None,
    color: bool = False,
    reject: bool = True,
    pkg: Package | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> ProcessResult:
    """Run and forward output line by line as it is produced.

    With a *prefix* every line becomes ``"<prefix>: <line>"`` so output of
    many concurrent packages stays legible; without one the output passes
    through untouched.
    """
    logger.log(SILLY, "run_streaming %s", shlex.join([command, *args]))
    out_stream = stdout if stdout is not None else sys.stdout
    err_stream = stderr if stderr is not None else sys.stderr
    tag = None
    if prefix:
        tag = click.style(prefix, fg=next(_COLOR_WHEEL)) if color else prefix

    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        result = ProcessResult(command, tuple(args), MISSING_BINARY_EXIT, stderr=str(exc))
        return _settle(result, reject=reject, pkg=pkg)

    assert proc.stdout is not None
    assert proc.stderr is not None
    try:
        await asyncio.gather(
            _forward(proc.stdout, out_stream, tag),
            _forward(proc.stderr, err_stream, tag),
        )
        exit_code = await proc.wait()
    finally:
        await _reap(proc)
    return _settle(ProcessResult(command, tuple(args), exit_code), reject=reject, pkg=pkg)


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


async def _forward(reader: asyncio.StreamReader, stream: TextIO, tag: str | None) -> None:
    """Copy *reader* to *stream*, prefixing complete lines with *tag*.

    A line longer than :data:`_STREAM_LIMIT` is forwarded in pieces, each
    on its own prefixed line.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = b""
    while True:
        chunk = await reader.read(_READ_SIZE)
        if not chunk:
            break
        if tag is None:
            _write(stream, decoder.decode(chunk))
            continue
        pending += chunk
        *lines, pending = pending.split(b"\n")
        if len(pending) >= _STREAM_LIMIT:
            lines.append(pending)
            pending = b""
        for line in lines:
            _write(stream, f"{tag}: {decoder.decode(line)}\n")
    if tag is None:
        _write(stream, decoder.decode(b"", final=True))
    elif pending:
        _write(stream, f"{tag}: {decoder.decode(pending, final=True)}\n")


def _write(stream: TextIO, text: str) -> None:
    if text:
        stream.write(text)
        stream.flush()


async def _reap(proc: asyncio.subprocess.Process) -> None:
    """Kill the child if it is still running and wait for it to exit."""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await asyncio.shield(proc.wait())


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").rstrip("\r\n")


def _settle(result: ProcessResult, *, reject: bool, pkg: Package | None) -> ProcessResult:
    if not (result.failed and reject):
        return result
    message = None
    if result.buffer_exceeded:
        message = f"Output of {result.command_line} exceeded the max buffer size"
    if pkg is not None:
        raise PackageError(result, pkg, message)
    raise ProcessFailedError(result, message)
