"""Package-manager invocation with the corepack dispatcher shim.

:func:`command_and_args` is the only place that decides whether the client
binary is launched directly or through ``corepack``; all three invocation
modes go through it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from monoctl.config.logging import SILLY
from monoctl.config.settings import RuntimeSettings
from monoctl.infrastructure.process import (
    ProcessResult,
    run_captured,
    run_streaming,
    run_sync,
)

if TYPE_CHECKING:
    from monoctl.domain.package import Package

logger = logging.getLogger(__name__)

DISPATCHER = "corepack"


def command_and_args(
    npm_client: str,
    args: Sequence[str],
    *,
    settings: RuntimeSettings | None = None,
) -> tuple[str, list[str]]:
    """Return the executable and argv for running *npm_client* with *args*."""
    settings = settings or RuntimeSettings()
    if settings.dispatcher_enabled:
        return DISPATCHER, [npm_client, *args]
    return npm_client, list(args)


def exec_package_manager_sync(
    npm_client: str,
    args: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    settings: RuntimeSettings | None = None,
) -> int:
    command, command_args = command_and_args(npm_client, args, settings=settings)
    logger.log(SILLY, "exec_package_manager_sync %s %s", command, command_args)
    return run_sync(command, command_args, cwd=cwd, env=env)


async def exec_package_manager(
    npm_client: str,
    args: Sequence[str],
    *,
    settings: RuntimeSettings | None = None,
    **opts: Any,
) -> ProcessResult:
    command, command_args = command_and_args(npm_client, args, settings=settings)
    logger.log(SILLY, "exec_package_manager %s %s", command, command_args)
    return await run_captured(command, command_args, **opts)


async def spawn_package_manager_streaming(
    npm_client: str,
    args: Sequence[str],
    *,
    prefix: str | None = None,
    pkg: Package | None = None,
    settings: RuntimeSettings | None = None,
    **opts: Any,
) -> ProcessResult:
    command, command_args = command_and_args(npm_client, args, settings=settings)
    logger.log(SILLY, "spawn_package_manager_streaming %s %s", command, command_args)
    return await run_streaming(command, command_args, prefix=prefix, pkg=pkg, **opts)
