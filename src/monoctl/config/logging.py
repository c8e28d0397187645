"""structlog configuration and the buffered log sink for monoctl.

Two output modes:
- Human (default): console renderer to stderr, colored when enabled
- JSON (--log-json): Structured JSON lines to stderr

Every ``monoctl.*`` stdlib logger feeds a :class:`LoggingContext`. Records
issued before the final level is known are held back until
:meth:`LoggingContext.resume`; every record is also kept in the history
that backs the diagnostic log file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog

from monoctl.domain.errors import ValidationError

LOGGER_NAME = "monoctl"
DEBUG_LOG_FILENAME = "monoctl-debug.log"

SILLY = 5
VERBOSE = logging.DEBUG
INFO = logging.INFO
TIMING = 22
HTTP = 24
SUCCESS = 26
NOTICE = 28
WARN = logging.WARNING
ERROR = logging.ERROR
SILENT = 100

LEVELS: dict[str, int] = {
    "silly": SILLY,
    "verbose": VERBOSE,
    "info": INFO,
    "timing": TIMING,
    "http": HTTP,
    "success": SUCCESS,
    "notice": NOTICE,
    "warn": WARN,
    "error": ERROR,
    "silent": SILENT,
}

for _name, _value in LEVELS.items():
    if logging.getLevelName(_value) == f"Level {_value}":
        logging.addLevelName(_value, _name.upper())


def level_for(level: str | int) -> int:
    """Translate a level name (``"verbose"``, ``"warn"`` ...) to its number."""
    if isinstance(level, int):
        return level
    try:
        return LEVELS[level.lower()]
    except KeyError:
        choices = ", ".join(LEVELS)
        raise ValidationError("ELOGLEVEL", f"Unknown loglevel {level!r}; expected one of {choices}") from None


def configure_logging(*, log_json: bool = False, color: bool | None = None) -> logging.Handler:
    """Configure structlog processors and build the stderr output handler.

    Args:
        log_json: Use JSON renderer instead of console renderer.
        color: Force colors on/off; ``None`` follows ``stderr.isatty()``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        use_color = sys.stderr.isatty() if color is None else color
        renderer = structlog.dev.ConsoleRenderer(colors=use_color)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    return handler


class _SinkHandler(logging.Handler):
    """Routes every ``monoctl`` record into its owning context."""

    def __init__(self, context: LoggingContext) -> None:
        super().__init__(level=logging.NOTSET)
        self.context = context

    def emit(self, record: logging.LogRecord) -> None:
        self.context._handle(record)


class LoggingContext:
    """Buffered log sink with a ``buffer()`` / ``resume(level)`` lifecycle.

    Owned by the lifecycle controller and handed to composed commands so
    the whole process shares one history.
    """

    def __init__(self, logger_name: str = LOGGER_NAME) -> None:
        self._logger = logging.getLogger(logger_name)
        self._sink = _SinkHandler(self)
        self._history: list[logging.LogRecord] = []
        self._pending: list[logging.LogRecord] = []
        self._output: logging.Handler | None = None
        self._paused = False
        self._installed = False
        self.level = INFO

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def history(self) -> tuple[logging.LogRecord, ...]:
        return tuple(self._history)

    def buffer(self) -> None:
        """Start holding back records until :meth:`resume`."""
        self._install()
        self._paused = True

    def resume(
        self,
        level: str | int = INFO,
        *,
        log_json: bool = False,
        color: bool | None = None,
    ) -> None:
        """Set the output level and flush held records at or above it."""
        self._install()
        self.level = level_for(level)
        self._output = configure_logging(log_json=log_json, color=color)
        self._paused = False
        pending, self._pending = self._pending, []
        for record in pending:
            self._emit(record)

    def close(self) -> None:
        """Detach from the logger tree."""
        if self._installed:
            self._logger.removeHandler(self._sink)
            self._logger.propagate = True
            self._installed = False

    def format_history(self) -> list[str]:
        """One line per record: ``<id> <level> <logger> <message>``."""
        lines = []
        for index, record in enumerate(self._history):
            lines.append(f"{index} {record.levelname.lower()} {record.name} {record.getMessage()}")
        return lines

    def write_log_file(self, directory: Path) -> Path:
        """Persist the full history for postmortem inspection."""
        path = directory / DEBUG_LOG_FILENAME
        content = "\n".join(self.format_history())
        path.write_text(content + "\n" if content else "", encoding="utf-8")
        return path

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _install(self) -> None:
        if self._installed:
            return
        for handler in list(self._logger.handlers):
            if isinstance(handler, _SinkHandler):
                self._logger.removeHandler(handler)
                handler.context._installed = False
        self._logger.addHandler(self._sink)
        self._logger.setLevel(1)
        self._logger.propagate = False
        self._installed = True

    def _handle(self, record: logging.LogRecord) -> None:
        self._history.append(record)
        if self._paused:
            self._pending.append(record)
        else:
            self._emit(record)

    def _emit(self, record: logging.LogRecord) -> None:
        if self._output is not None and record.levelno >= self.level:
            self._output.handle(record)
