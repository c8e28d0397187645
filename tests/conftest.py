"""Shared pytest fixtures and test helpers for monoctl tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from monoctl.config.discovery import CONFIG_ENV_VAR
from monoctl.config.logging import LOGGER_NAME
from monoctl.services.environment import CI_ENV_VARS


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's CI markers, config override and corepack out of tests."""
    for name in (*CI_ENV_VARS, CONFIG_ENV_VAR, "COREPACK_ROOT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo the handler/propagation changes a LoggingContext makes."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    try:
        yield
    finally:
        logger.handlers[:] = handlers
        logger.setLevel(level)
        logger.propagate = propagate


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary monorepo: root manifest, monoctl.toml and three packages.

    ``pkg-b`` depends on ``pkg-a``; ``pkg-c`` is private and standalone.
    This is the single source of truth for the sample project layout.
    """
    write_json(tmp_path / "package.json", {"name": "root", "private": True})
    (tmp_path / "monoctl.toml").write_text('version = "1.0.0"\n', encoding="utf-8")
    make_package(tmp_path, "pkg-a", scripts={"build": "echo a"})
    make_package(
        tmp_path,
        "pkg-b",
        dependencies={"pkg-a": "^1.0.0", "left-pad": "^1.3.0"},
        scripts={"build": "echo b", "test": "echo t"},
    )
    make_package(tmp_path, "pkg-c", private=True)
    return tmp_path


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def write_json(path: Path, data: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def make_package(
    root: Path,
    name: str,
    *,
    version: str = "1.0.0",
    directory: str = "packages",
    private: bool = False,
    dependencies: dict[str, str] | None = None,
    dev_dependencies: dict[str, str] | None = None,
    scripts: dict[str, str] | None = None,
) -> Path:
    """Write ``<root>/<directory>/<name>/package.json`` and return its directory."""
    manifest: dict[str, Any] = {"name": name, "version": version}
    if private:
        manifest["private"] = True
    if dependencies:
        manifest["dependencies"] = dependencies
    if dev_dependencies:
        manifest["devDependencies"] = dev_dependencies
    if scripts:
        manifest["scripts"] = scripts
    location = root / directory / name
    write_json(location / "package.json", manifest)
    return location
