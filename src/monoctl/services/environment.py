"""Terminal and CI detection producing default logging/progress options."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TextIO

CI_ENV_VARS = ("CI", "CONTINUOUS_INTEGRATION", "BUILD_NUMBER", "RUN_ID")


@dataclass(frozen=True)
class EnvironmentDefaults:
    """Lowest-priority option layer plus terminal capabilities.

    ``None`` fields are undefined and left for other sources to fill.
    ``color`` and ``unicode`` are not options; they steer the log renderer.
    """

    ci: bool
    progress: bool | None = None
    loglevel: str | None = None
    color: bool | None = None
    unicode: bool | None = None

    def as_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"ci": self.ci}
        if self.progress is not None:
            options["progress"] = self.progress
        if self.loglevel is not None:
            options["loglevel"] = self.loglevel
        return options


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    """Whether a CI service is running us."""
    env = os.environ if environ is None else environ
    for name in CI_ENV_VARS:
        value = env.get(name)
        if value and value.strip().lower() not in {"false", "0"}:
            return True
    return False


def _isatty(stream: TextIO | None) -> bool:
    try:
        return bool(stream is not None and stream.isatty())
    except ValueError:
        # closed stream
        return False


def detect_environment(
    *,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    environ: Mapping[str, str] | None = None,
) -> EnvironmentDefaults:
    """Apply the first matching rule of the detection table.

    1. CI, or stderr not a terminal: no color, no progress.
    2. stdout piped: no progress, only errors are logged.
    3. stderr a terminal: color and unicode output.
    """
    out = sys.stdout if stdout is None else stdout
    err = sys.stderr if stderr is None else stderr
    ci = is_ci(environ)

    if ci or not _isatty(err):
        return EnvironmentDefaults(ci=ci, progress=False, color=False)
    if not _isatty(out):
        return EnvironmentDefaults(ci=ci, progress=False, loglevel="error")
    return EnvironmentDefaults(ci=ci, color=True, unicode=True)
