"""Tests for the preparation stage."""

from __future__ import annotations

import logging
from pathlib import Path

from monoctl.config.logging import LOGGER_NAME, LoggingContext
from monoctl.config.settings import CommandOptions
from monoctl.infrastructure.project import Project
from monoctl.services.preparation import prepare
from tests.conftest import make_package


def _messages(ctx: LoggingContext) -> list[str]:
    return [record.getMessage() for record in ctx.history]


class TestPrepare:
    def test_builds_graph(self, project_root: Path) -> None:
        graph = prepare(
            Project(project_root),
            CommandOptions.resolve({}),
            logger=logging.getLogger(LOGGER_NAME),
        )
        assert sorted(graph) == ["pkg-a", "pkg-b", "pkg-c"]
        assert graph.dependencies("pkg-b") == {"pkg-a"}

    def test_status_lines(self, project_root: Path) -> None:
        (project_root / "monoctl.toml").write_text('version = "independent"\n')
        ctx = LoggingContext()
        ctx.buffer()
        prepare(
            Project(project_root),
            CommandOptions.resolve({"ci": True}),
            logger=logging.getLogger(LOGGER_NAME),
        )
        assert _messages(ctx)[:2] == ["versioning independent", "ci enabled"]

    def test_composed_is_quiet(self, project_root: Path) -> None:
        (project_root / "monoctl.toml").write_text('version = "independent"\n')
        ctx = LoggingContext()
        ctx.buffer()
        prepare(
            Project(project_root),
            CommandOptions.resolve({"ci": True}),
            logger=logging.getLogger(LOGGER_NAME),
            composed=True,
        )
        assert "versioning independent" not in _messages(ctx)
        assert "ci enabled" not in _messages(ctx)

    def test_warns_about_cycles(self, project_root: Path) -> None:
        make_package(project_root, "pkg-x", dependencies={"pkg-y": "*"})
        make_package(project_root, "pkg-y", dependencies={"pkg-x": "*"})
        ctx = LoggingContext()
        ctx.buffer()
        prepare(Project(project_root), CommandOptions.resolve({}), logger=logging.getLogger(LOGGER_NAME))
        assert "Dependency cycle detected: pkg-x <-> pkg-y" in _messages(ctx)
