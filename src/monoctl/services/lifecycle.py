"""Command: the staged lifecycle shared by every monoctl subcommand.

Stages run strictly one after another; the first one to raise skips all
later stages and goes through the shared failure path, which classifies,
reports and re-raises the error::

    INIT → ENV → OPTIONS → PROPERTIES → LOGGING → VALIDATE → PREPARE
         → INITIALIZE → EXECUTE → DONE        (any failure → FAILED)

Concrete commands subclass :class:`Command` and implement
:meth:`Command.initialize` and :meth:`Command.execute`; either may be a
plain method or a coroutine. Returning ``False`` from ``initialize()``
skips ``execute()`` and the run still succeeds.

Usage::

    class BuildCommand(Command):
        requires_git = False

        def initialize(self) -> bool:
            return len(self.package_graph) > 0

        async def execute(self) -> None:
            ...

    await BuildCommand({"cwd": "/repo", "concurrency": 4}).run()
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar, TypeVar

from monoctl import __version__
from monoctl.config.logging import LOGGER_NAME, NOTICE, SILLY, LoggingContext
from monoctl.config.settings import CommandOptions
from monoctl.domain.errors import ErrorKind, ValidationError, classify
from monoctl.infrastructure.package_graph import PackageGraph
from monoctl.infrastructure.project import Project
from monoctl.services import validation
from monoctl.services.diagnostics import clean_stack, log_package_error, warn_if_hanging
from monoctl.services.environment import EnvironmentDefaults, detect_environment
from monoctl.services.preparation import prepare
from monoctl.services.properties import ExecOpts, derive_properties
from monoctl.services.telemetry import root_span, trace_span

# argv keys used by the lifecycle itself and never exposed as options.
HIDDEN_ARGV_KEYS = frozenset({"cwd"})

_C = TypeVar("_C", bound="Command")


class LifecycleState(StrEnum):
    INIT = "init"
    ENV = "env"
    OPTIONS = "options"
    PROPERTIES = "properties"
    LOGGING = "logging"
    VALIDATE = "validate"
    PREPARE = "prepare"
    INITIALIZE = "initialize"
    EXECUTE = "execute"
    DONE = "done"
    FAILED = "failed"


class Command(ABC):
    """Base class driving one command run through all lifecycle stages.

    Attributes:
        name: Class name without the ``Command`` suffix, lower-cased.
        composed: True when another command launched this one.
        argv: Frozen copy of the CLI arguments.
        options: Resolved options (set by the OPTIONS stage).
        concurrency: Max parallel child processes (PROPERTIES stage).
        toposort: Whether package tasks respect dependency order.
        exec_opts: Child-process defaults (PROPERTIES stage).
        package_graph: Dependency graph (PREPARE stage).
        state: Current :class:`LifecycleState`.
    """

    requires_git: ClassVar[bool] = True
    # Commands whose [command.<name>] sections this command inherits.
    other_command_configs: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        argv: Mapping[str, Any] | None = None,
        *,
        skip_validations: bool = False,
        logging_context: LoggingContext | None = None,
    ) -> None:
        raw = copy.deepcopy(dict(argv or {}))

        self.name = type(self).__name__.removesuffix("Command").lower()
        composed_by = raw.get("composed")
        self.composed = isinstance(composed_by, str) and composed_by != self.name
        self.argv: Mapping[str, Any] = MappingProxyType(raw)
        self.skip_validations = skip_validations
        self.state = LifecycleState.INIT

        self.options: CommandOptions | None = None
        self.env_defaults: EnvironmentDefaults | None = None
        self.concurrency: int | None = None
        self.toposort = False
        self.exec_opts: ExecOpts | None = None
        self.package_graph: PackageGraph | None = None

        self._project: Project | None = None
        self._proceed: Any = None
        self._result: Any = None

        self.logging = logging_context or LoggingContext()
        self.logging.buffer()
        self.logger = logging.getLogger(f"{LOGGER_NAME}.{self.name}")
        self.logger.log(SILLY, "argv %r", raw)
        if not self.composed:
            self.logger.log(NOTICE, "cli v%s", __version__)

    # ------------------------------------------------------------------
    # Capability hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> Any:
        """Prepare command-specific state. Return ``False`` to stop early."""

    @abstractmethod
    def execute(self) -> Any:
        """Do the work. The return value becomes the result of :meth:`run`."""

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    @property
    def project(self) -> Project:
        if self._project is None:
            raise ValidationError("ENOPROJECT", "monoctl project not initialized!")
        return self._project

    @project.setter
    def project(self, project: Project) -> None:
        self._project = project

    def stages(self) -> list[tuple[LifecycleState, Callable[[], Any]]]:
        """Ordered ``(state, stage)`` pairs run by :meth:`run`."""
        stages: list[tuple[LifecycleState, Callable[[], Any]]] = [
            (LifecycleState.INIT, self.build_project),
            (LifecycleState.ENV, self.configure_environment),
            (LifecycleState.OPTIONS, self.configure_options),
            (LifecycleState.PROPERTIES, self.configure_properties),
            (LifecycleState.LOGGING, self.configure_logging),
        ]
        # Commands that repair the project run without validations.
        if not self.skip_validations:
            stages.append((LifecycleState.VALIDATE, self.run_validations))
        stages.extend(
            [
                (LifecycleState.PREPARE, self.run_preparations),
                (LifecycleState.INITIALIZE, self._run_initialize),
                (LifecycleState.EXECUTE, self._run_execute),
            ]
        )
        return stages

    async def run(self) -> Any:
        """Run every stage in order; return what ``execute()`` returned."""
        try:
            with root_span(f"command {self.name}"):
                for state, stage in self.stages():
                    self.state = state
                    with trace_span(state.value):
                        await _settle(stage())
        except Exception as exc:
            self.state = LifecycleState.FAILED
            self._handle_failure(exc)
            raise

        self.state = LifecycleState.DONE
        warn_if_hanging(self.logger)
        return self._result

    def run_sync(self) -> Any:
        """Blocking wrapper around :meth:`run`."""
        return asyncio.run(self.run())

    def compose(self, command_cls: type[_C], **argv: Any) -> _C:
        """Create *command_cls* as a command launched by this one.

        The child shares this command's argv and log sink; *argv* overrides.
        """
        merged = {**self.argv, "composed": self.name, **argv}
        return command_cls(merged, logging_context=self.logging)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def build_project(self) -> None:
        self.project = Project(self.argv.get("cwd"))

    def configure_environment(self) -> None:
        self.env_defaults = detect_environment()

    def configure_options(self) -> None:
        config = self.project.config
        assert self.env_defaults is not None
        cli = {key: value for key, value in self.argv.items() if key not in HIDDEN_ARGV_KEYS}
        self.options = CommandOptions.resolve(
            cli,
            command_config=config.command_section(self.name),
            inherited_configs=[config.command_section(name) for name in self.other_command_configs],
            global_config=config.global_options(),
            env_defaults=self.env_defaults.as_options(),
        )

    def configure_properties(self) -> None:
        assert self.options is not None
        props = derive_properties(self.options, self.project.root_path)
        self.concurrency = props.concurrency
        self.toposort = props.toposort
        self.exec_opts = props.exec_opts

    def configure_logging(self) -> None:
        assert self.options is not None
        self.logging.resume(
            self.options.loglevel or "info",
            log_json=bool(self.options.get("log_json", False)),
            color=self.env_defaults.color if self.env_defaults else None,
        )

    def git_initialized(self) -> bool:
        return validation.git_initialized(self.project.root_path)

    def run_validations(self) -> None:
        assert self.options is not None
        validation.validate(
            self.project,
            self.options,
            requires_git=self.requires_git,
            git_check=lambda _root: self.git_initialized(),
        )

    def run_preparations(self) -> None:
        assert self.options is not None
        self.package_graph = prepare(
            self.project,
            self.options,
            logger=self.logger,
            composed=self.composed,
        )

    async def _run_initialize(self) -> None:
        self._proceed = await _settle(self.initialize())

    async def _run_execute(self) -> None:
        if self._proceed is False:
            self.logger.debug("initialize() returned False, skipping execute()")
            return
        self._result = await _settle(self.execute())

    # ------------------------------------------------------------------
    # Failure path
    # ------------------------------------------------------------------

    def _handle_failure(self, exc: Exception) -> None:
        if self.logging.paused:
            self._resume_for_failure()

        kind = classify(exc)
        if kind is ErrorKind.PACKAGE:
            stream = bool(self.options.stream) if self.options is not None else False
            log_package_error(exc, self.logger, stream=stream)
        elif kind is ErrorKind.VALIDATION:
            code = getattr(exc, "code", "")
            self.logger.error("%s %s", code, exc)
        else:
            self.logger.error(clean_stack(exc, __file__))

        # Only unclassified failures get a postmortem log.
        if kind is ErrorKind.UNCLASSIFIED:
            self._write_log_file()

        warn_if_hanging(self.logger)

    def _resume_for_failure(self) -> None:
        level = (self.options.loglevel if self.options is not None else None) or "info"
        color = self.env_defaults.color if self.env_defaults else None
        try:
            self.logging.resume(level, color=color)
        except ValidationError:
            self.logging.resume("info", color=color)

    def _write_log_file(self) -> None:
        if self._project is not None:
            directory = self._project.root_path
        else:
            directory = Path(self.argv.get("cwd") or Path.cwd())
        try:
            path = self.logging.write_log_file(directory)
        except OSError as write_exc:
            self.logger.warning("Could not write the debug log: %s", write_exc)
            return
        self.logger.log(NOTICE, "A complete log of this run can be found in: %s", path)


async def _settle(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
