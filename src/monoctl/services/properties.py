"""Properties derived from resolved options: concurrency, toposort, exec opts."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from monoctl.config.settings import CommandOptions

DEFAULT_CONCURRENCY = os.cpu_count() or 1


@dataclass(frozen=True)
class ExecOpts:
    """Defaults for child processes launched by a command."""

    cwd: Path
    max_buffer: int | None = None


@dataclass(frozen=True)
class CommandProperties:
    concurrency: int
    toposort: bool
    exec_opts: ExecOpts


def parse_concurrency(value: Any, default: int = DEFAULT_CONCURRENCY) -> int:
    """Numeric value of *value*, *default* when unset/zero/non-numeric; at least 1."""
    number = 0.0
    if value is not None and not isinstance(value, bool):
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = 0.0
    if not number or not math.isfinite(number):
        number = default
    return max(1, int(number))


def derive_properties(options: CommandOptions, root_path: Path) -> CommandProperties:
    return CommandProperties(
        concurrency=parse_concurrency(options.concurrency),
        toposort=options.sort is not False,
        exec_opts=ExecOpts(cwd=root_path, max_buffer=options.max_buffer),
    )
