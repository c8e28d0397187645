"""Precondition checks run before any package is touched.

Checks run in a fixed order and the first failure raises; nothing after a
failing check (including later lifecycle stages) runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from monoctl.config.discovery import CONFIG_FILENAME
from monoctl.domain.errors import ValidationError
from monoctl.domain.package import MANIFEST_FILENAME
from monoctl.infrastructure.process import run_sync

if TYPE_CHECKING:
    from monoctl.config.settings import CommandOptions
    from monoctl.infrastructure.project import Project

logger = logging.getLogger(__name__)


def git_initialized(root_path: Path) -> bool:
    """Whether *root_path* is inside a git work tree and git is installed."""
    return run_sync("git", ["rev-parse"], cwd=root_path) == 0


def validate(
    project: Project,
    options: CommandOptions,
    *,
    requires_git: bool = True,
    git_check: Callable[[Path], bool] = git_initialized,
) -> None:
    """Raise :class:`ValidationError` for the first unmet precondition.

    The git probe only runs when git is required: by the command, or by a
    ``since`` filter.
    """
    if (options.since is not None or requires_git) and not git_check(project.root_path):
        raise ValidationError(
            "ENOGIT",
            "The git binary was not found, or this is not a git repository.",
        )

    if project.manifest is None:
        raise ValidationError(
            "ENOPKG",
            f"`{MANIFEST_FILENAME}` does not exist, have you run `monoctl init`?",
        )

    if project.config_not_found:
        raise ValidationError(
            "ENOLERNA",
            f"`{CONFIG_FILENAME}` does not exist, have you run `monoctl init`?",
        )

    if not project.version:
        raise ValidationError(
            "ENOVERSION",
            f"Required property version does not exist in `{CONFIG_FILENAME}`",
        )

    if options.independent and not project.is_independent():
        raise ValidationError(
            "EVERSIONMODE",
            "You ran monoctl with --independent, but the repository is not set to "
            "independent mode.\n"
            f'To use independent mode set the "version" property of {CONFIG_FILENAME} '
            'to "independent".\n'
            "Then you won't need to pass the --independent flag.",
        )

    if options.npm_client == "pnpm" and not options.use_workspaces:
        raise ValidationError(
            "ENOWORKSPACES",
            "Usage of pnpm without workspaces is not supported. To use pnpm with monoctl, "
            f"set use_workspaces = true in {CONFIG_FILENAME} and configure pnpm to use "
            "workspaces: https://pnpm.io/workspaces.",
        )

    logger.debug("Validations passed for %s", project.root_path)
