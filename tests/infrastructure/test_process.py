"""Tests for child-process primitives (real subprocesses via sys.executable)."""

from __future__ import annotations

import asyncio
import io
import sys
from pathlib import Path
from typing import Any

import pytest

from monoctl.domain.errors import PackageError, ProcessFailedError
from monoctl.domain.package import Package
from monoctl.infrastructure.process import (
    MISSING_BINARY_EXIT,
    ProcessResult,
    run_captured,
    run_streaming,
    run_sync,
)

PY = sys.executable
MISSING = "monoctl-definitely-missing-binary"


class TestProcessResult:
    def test_failed(self) -> None:
        assert ProcessResult("x", (), 0).failed is False
        assert ProcessResult("x", (), 1).failed is True
        assert ProcessResult("x", (), 0, buffer_exceeded=True).failed is True

    def test_command_line_quotes(self) -> None:
        assert ProcessResult("npm", ("run", "a b"), 0).command_line == "npm run 'a b'"


class TestRunSync:
    def test_exit_status(self) -> None:
        assert run_sync(PY, ["-c", "raise SystemExit(3)"]) == 3

    def test_missing_binary(self) -> None:
        assert run_sync(MISSING, []) == MISSING_BINARY_EXIT

    def test_cwd(self, tmp_path: Path) -> None:
        (tmp_path / "marker").write_text("")
        code = "import os, sys; sys.exit(0 if os.path.exists('marker') else 1)"
        assert run_sync(PY, ["-c", code], cwd=tmp_path) == 0


class TestRunCaptured:
    def test_captures_output(self) -> None:
        code = "import sys; print('hello'); print('oops', file=sys.stderr)"
        result = asyncio.run(run_captured(PY, ["-c", code]))
        assert result.exit_code == 0
        assert result.stdout == "hello"
        assert result.stderr == "oops"

    def test_env(self) -> None:
        code = "import os; print(os.environ['MONO_TEST'])"
        result = asyncio.run(run_captured(PY, ["-c", code], env={"MONO_TEST": "yes"}))
        assert result.stdout == "yes"

    def test_failure_raises(self) -> None:
        with pytest.raises(ProcessFailedError) as exc_info:
            asyncio.run(run_captured(PY, ["-c", "raise SystemExit(4)"]))
        assert exc_info.value.exit_code == 4
        assert not isinstance(exc_info.value, PackageError)

    def test_failure_with_package(self, tmp_path: Path) -> None:
        pkg = Package("pkg-a", tmp_path)
        with pytest.raises(PackageError) as exc_info:
            asyncio.run(run_captured(PY, ["-c", "raise SystemExit(5)"], pkg=pkg))
        assert exc_info.value.pkg is pkg

    def test_no_reject_returns_result(self) -> None:
        result = asyncio.run(run_captured(PY, ["-c", "raise SystemExit(6)"], reject=False))
        assert result.exit_code == 6
        assert result.failed

    def test_max_buffer_truncates(self) -> None:
        result = asyncio.run(
            run_captured(PY, ["-c", "print('x' * 100)"], max_buffer=10, reject=False)
        )
        assert result.buffer_exceeded
        assert result.stdout == "x" * 10

    def test_max_buffer_rejects(self) -> None:
        with pytest.raises(ProcessFailedError, match="max buffer"):
            asyncio.run(run_captured(PY, ["-c", "print('x' * 100)"], max_buffer=10))

    def test_missing_binary(self) -> None:
        result = asyncio.run(run_captured(MISSING, [], reject=False))
        assert result.exit_code == MISSING_BINARY_EXIT


class TestRunStreaming:
    def test_prefixed_lines(self) -> None:
        out, err = io.StringIO(), io.StringIO()
        code = "import sys; print('one'); print('two'); print('bad', file=sys.stderr)"
        result = asyncio.run(
            run_streaming(PY, ["-c", code], prefix="pkg-a", stdout=out, stderr=err)
        )
        assert result.exit_code == 0
        assert result.stdout == ""
        assert out.getvalue() == "pkg-a: one\npkg-a: two\n"
        assert err.getvalue() == "pkg-a: bad\n"

    def test_unprefixed_passthrough(self) -> None:
        out = io.StringIO()
        code = "import sys; sys.stdout.write('raw\\nlast')"
        asyncio.run(run_streaming(PY, ["-c", code], stdout=out, stderr=io.StringIO()))
        assert out.getvalue() == "raw\nlast"

    def test_colored_prefix(self) -> None:
        out = io.StringIO()
        asyncio.run(
            run_streaming(
                PY,
                ["-c", "print('hi')"],
                prefix="pkg-a",
                color=True,
                stdout=out,
                stderr=io.StringIO(),
            )
        )
        assert "\x1b[" in out.getvalue()
        assert out.getvalue().endswith(": hi\n")

    def test_failure_raises_package_error(self, tmp_path: Path) -> None:
        pkg = Package("pkg-a", tmp_path)
        with pytest.raises(PackageError) as exc_info:
            asyncio.run(
                run_streaming(
                    PY,
                    ["-c", "raise SystemExit(7)"],
                    pkg=pkg,
                    stdout=io.StringIO(),
                    stderr=io.StringIO(),
                )
            )
        assert exc_info.value.exit_code == 7

    def test_long_line_without_newline(self, tmp_path: Path) -> None:
        size = 2 * 1024 * 1024
        out = io.StringIO()
        code = f"import sys; sys.stdout.write('x' * {size})"
        result = asyncio.run(
            run_streaming(
                PY,
                ["-c", code],
                prefix="pkg",
                pkg=Package("pkg", tmp_path),
                stdout=out,
                stderr=io.StringIO(),
            )
        )
        assert result.exit_code == 0
        text = out.getvalue()
        assert text.count("x") == size
        assert all(line.startswith("pkg: ") for line in text.splitlines())
        assert text.endswith("\n")

    def test_long_line_unprefixed(self) -> None:
        size = 2 * 1024 * 1024
        out = io.StringIO()
        code = f"import sys; sys.stdout.write('x' * {size})"
        asyncio.run(run_streaming(PY, ["-c", code], stdout=out, stderr=io.StringIO()))
        assert out.getvalue() == "x" * size


class TestCancellation:
    @pytest.fixture
    def spawned(self, monkeypatch: pytest.MonkeyPatch) -> list[asyncio.subprocess.Process]:
        procs: list[asyncio.subprocess.Process] = []
        original = asyncio.create_subprocess_exec

        async def spawn(*args: Any, **kwargs: Any) -> asyncio.subprocess.Process:
            proc = await original(*args, **kwargs)
            procs.append(proc)
            return proc

        monkeypatch.setattr(asyncio, "create_subprocess_exec", spawn)
        return procs

    @pytest.mark.parametrize(
        ("runner", "kwargs"),
        [
            (run_captured, {}),
            (run_streaming, {"prefix": "pkg", "stdout": io.StringIO(), "stderr": io.StringIO()}),
        ],
        ids=["captured", "streaming"],
    )
    def test_cancelled_child_is_reaped(
        self,
        spawned: list[asyncio.subprocess.Process],
        runner: Any,
        kwargs: dict[str, Any],
    ) -> None:
        async def main() -> int | None:
            with pytest.raises(TimeoutError):
                await asyncio.wait_for(runner(PY, ["-c", "import time; time.sleep(30)"], **kwargs), 1.0)
            return spawned[0].returncode

        assert asyncio.run(main()) is not None
