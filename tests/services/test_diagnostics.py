"""Tests for failure reporting helpers."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path

import pytest

from monoctl.config.logging import LOGGER_NAME, LoggingContext
from monoctl.domain.errors import PackageError
from monoctl.domain.package import Package
from monoctl.infrastructure.process import ProcessResult
from monoctl.services.diagnostics import clean_stack, log_package_error, open_handles, warn_if_hanging


def _logger() -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.diagnostics-test")


def _raise_here() -> None:
    raise RuntimeError("deep failure")


class TestCleanStack:
    def test_drops_internal_frames(self) -> None:
        try:
            _raise_here()
        except RuntimeError as exc:
            text = clean_stack(exc, __file__)
        assert "RuntimeError: deep failure" in text
        assert "_raise_here" not in text

    def test_keeps_external_frames(self, tmp_path: Path) -> None:
        try:
            _raise_here()
        except RuntimeError as exc:
            text = clean_stack(exc, tmp_path / "other.py")
        assert "_raise_here" in text


class TestLogPackageError:
    def _error(self, tmp_path: Path) -> PackageError:
        result = ProcessResult("npm", ("run", "build"), 2, stdout="built half", stderr="then died")
        return PackageError(result, Package("pkg-a", tmp_path))

    def test_captured_output_is_echoed(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        ctx = LoggingContext()
        ctx.buffer()
        log_package_error(self._error(tmp_path), _logger())
        err = capsys.readouterr().err
        assert "built half" in err
        assert "then died" in err
        messages = [r.getMessage() for r in ctx.history]
        assert messages[0] == "npm run build exited 2 in 'pkg-a'"
        assert messages[-1] == messages[0]

    def test_streamed_output_not_repeated(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        ctx = LoggingContext()
        ctx.buffer()
        log_package_error(self._error(tmp_path), _logger(), stream=True)
        assert "built half" not in capsys.readouterr().err
        assert len(ctx.history) == 1

    def test_error_without_process_details(self) -> None:
        ctx = LoggingContext()
        ctx.buffer()
        err = RuntimeError("odd")
        log_package_error(err, _logger())
        assert "RuntimeError exited ? in '?'" in ctx.history[0].getMessage()


class TestHangingHandles:
    def test_nothing_open(self) -> None:
        assert warn_if_hanging(_logger()) == []

    def test_reports_pending_task(self) -> None:
        ctx = LoggingContext()
        ctx.buffer()

        async def scenario() -> list[str]:
            task = asyncio.create_task(asyncio.sleep(5), name="straggler")
            try:
                return warn_if_hanging(_logger())
            finally:
                task.cancel()

        handles = asyncio.run(scenario())
        assert handles == ["task 'straggler'"]
        assert "straggler" in ctx.history[-1].getMessage()

    def test_reports_foreground_thread(self) -> None:
        release = threading.Event()
        thread = threading.Thread(target=release.wait, name="worker")
        thread.start()
        try:
            assert "thread 'worker'" in open_handles()
        finally:
            release.set()
            thread.join()
