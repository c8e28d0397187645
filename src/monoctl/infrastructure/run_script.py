"""Run a package's lifecycle script through its package manager."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, TextIO

from monoctl.config.logging import SILLY
from monoctl.infrastructure.package_manager import (
    exec_package_manager,
    spawn_package_manager_streaming,
)

if TYPE_CHECKING:
    from monoctl.config.settings import RuntimeSettings
    from monoctl.domain.package import Package
    from monoctl.infrastructure.process import ProcessResult

logger = logging.getLogger(__name__)

PACKAGE_NAME_ENV_VAR = "MONOCTL_PACKAGE_NAME"


def npm_exec_opts(pkg: Package, registry: str | None = None) -> dict[str, Any]:
    """Working directory and environment for running inside *pkg*."""
    env = dict(os.environ)
    env[PACKAGE_NAME_ENV_VAR] = pkg.name
    if registry:
        env["npm_config_registry"] = registry
    return {"cwd": pkg.location, "env": env}


async def npm_run_script(
    script: str,
    *,
    pkg: Package,
    args: Sequence[str] = (),
    npm_client: str = "npm",
    reject: bool = True,
    max_buffer: int | None = None,
    registry: str | None = None,
    settings: RuntimeSettings | None = None,
) -> ProcessResult:
    """Run *script* in *pkg* and capture its output."""
    logger.log(SILLY, "npm_run_script %s %s %s", script, list(args), pkg.name)
    return await exec_package_manager(
        npm_client,
        ["run", script, *args],
        settings=settings,
        reject=reject,
        pkg=pkg,
        max_buffer=max_buffer,
        **npm_exec_opts(pkg, registry),
    )


async def npm_run_script_streaming(
    script: str,
    *,
    pkg: Package,
    args: Sequence[str] = (),
    npm_client: str = "npm",
    prefix: bool = True,
    color: bool = False,
    reject: bool = True,
    registry: str | None = None,
    settings: RuntimeSettings | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> ProcessResult:
    """Run *script* in *pkg*, forwarding output live.

    With *prefix* each line is tagged with the package name.
    """
    logger.log(SILLY, "npm_run_script_streaming %s %s %s", script, list(args), pkg.name)
    return await spawn_package_manager_streaming(
        npm_client,
        ["run", script, *args],
        settings=settings,
        prefix=pkg.name if prefix else None,
        pkg=pkg,
        color=color,
        reject=reject,
        stdout=stdout,
        stderr=stderr,
        **npm_exec_opts(pkg, registry),
    )
