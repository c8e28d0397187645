"""Failure reporting helpers: cleaned tracebacks, package reports, hang check."""

from __future__ import annotations

import asyncio
import logging
import threading
import traceback
from pathlib import Path

import click

from monoctl.domain.errors import PackageError


def clean_stack(exc: BaseException, internal_file: str | Path) -> str:
    """Format *exc* without the frames that live in *internal_file*.

    The lifecycle driver frames are the same for every failure and only
    bury the frames that matter.
    """
    internal = Path(internal_file).resolve()
    tb = traceback.TracebackException.from_exception(exc)
    kept = [frame for frame in tb.stack if Path(frame.filename).resolve() != internal]
    tb.stack = traceback.StackSummary.from_list(kept)
    return "".join(tb.format()).rstrip()


def log_package_error(
    err: PackageError | Exception,
    logger: logging.Logger,
    *,
    stream: bool = False,
) -> None:
    """Report a failed package script without a stack trace.

    Captured output is written straight to stderr so it keeps its own
    formatting; when the output was streamed it has already been shown.
    """
    pkg_name = getattr(getattr(err, "pkg", None), "name", "?")
    command_line = getattr(err, "command_line", type(err).__name__)
    exit_code = getattr(err, "exit_code", "?")
    summary = f"{command_line} exited {exit_code} in {pkg_name!r}"
    logger.error(summary)
    if stream:
        return
    stdout = getattr(err, "stdout", "")
    stderr = getattr(err, "stderr", "")
    if stdout:
        logger.error("%s stdout:", command_line)
        click.echo(stdout, err=True)
    if stderr:
        logger.error("%s stderr:", command_line)
        click.echo(stderr, err=True)
    # Summary again below the output.
    logger.error(summary)


def open_handles() -> list[str]:
    """Describe non-daemon threads and pending asyncio tasks besides our own."""
    current_thread = threading.current_thread()
    handles = [
        f"thread {thread.name!r}"
        for thread in threading.enumerate()
        if thread is not current_thread
        and thread is not threading.main_thread()
        and thread.is_alive()
        and not thread.daemon
    ]
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return handles
    current_task = asyncio.current_task(loop)
    handles.extend(
        f"task {task.get_name()!r}"
        for task in asyncio.all_tasks(loop)
        if task is not current_task and not task.done()
    )
    return handles


def warn_if_hanging(logger: logging.Logger) -> list[str]:
    """Warn about handles that could keep the process alive. Never kills."""
    handles = open_handles()
    if handles:
        logger.warning(
            "%d handle(s) still open, the process may not exit: %s",
            len(handles),
            ", ".join(handles),
        )
    return handles
