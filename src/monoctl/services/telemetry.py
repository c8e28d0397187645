"""Telemetry primitives: Span, root_span, trace_span.

Each command run opens a root span; every lifecycle stage is a child span.
Outside a root span ``trace_span`` yields None and records nothing.
Completed trees are logged at ``timing`` level.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from monoctl.config.logging import TIMING

logger = logging.getLogger(__name__)

# ── Context variables ────────────────────────────────────────────────

_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


# ── Span ─────────────────────────────────────────────────────────────


@dataclass
class Span:
    """Hierarchical timing span."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    ok: bool | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self, *, ok: bool = True) -> None:
        self.end_time = time.perf_counter()
        self.ok = ok

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.ok is False:
            result["ok"] = False
        if self.annotations:
            result["annotations"] = self.annotations
        if self.children:
            result["children"] = [c.to_dict() for c in self.children]
        return result


# ── Context managers ─────────────────────────────────────────────────


@contextmanager
def root_span(name: str) -> Generator[Span]:
    """Open a new span tree; logged when the block exits."""
    span = Span(name=name)
    token = _current_span.set(span)
    try:
        yield span
    except BaseException:
        span.end(ok=False)
        raise
    else:
        span.end()
    finally:
        _current_span.reset(token)
        _log_span(span)


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Create a child span under the current span.

    Yields None when no span tree is open.
    """
    parent = _current_span.get()
    if parent is None:
        yield None
        return

    child = Span(name=name, parent=parent)
    parent.children.append(child)

    token = _current_span.set(child)
    try:
        yield child
    except BaseException:
        child.end(ok=False)
        raise
    else:
        child.end()
    finally:
        _current_span.reset(token)


# ── Helpers ──────────────────────────────────────────────────────────


def _log_span(span: Span, depth: int = 0) -> None:
    logger.log(
        TIMING,
        "%s%s %.2fms%s",
        "  " * depth,
        span.name,
        span.duration_ms,
        "" if span.ok is not False else " (failed)",
    )
    for child in span.children:
        _log_span(child, depth + 1)


def get_current_span() -> Span | None:
    """Get the current active span (for manual annotation)."""
    return _current_span.get()
