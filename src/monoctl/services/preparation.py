"""Preparation stage: status lines, package loading, graph construction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from monoctl.infrastructure.package_graph import PackageGraph

if TYPE_CHECKING:
    from monoctl.config.settings import CommandOptions
    from monoctl.infrastructure.project import Project


def prepare(
    project: Project,
    options: CommandOptions,
    *,
    logger: logging.Logger,
    composed: bool = False,
) -> PackageGraph:
    """Load the project's packages and build their dependency graph.

    Composed commands skip the status lines; the composing command has
    already logged them.
    """
    if not composed and project.is_independent():
        logger.info("versioning independent")

    if not composed and options.ci:
        logger.info("ci enabled")

    packages = project.get_packages(use_workspaces=options.use_workspaces)
    graph = PackageGraph(packages)
    for cycle in graph.cycles():
        logger.warning("Dependency cycle detected: %s", " <-> ".join(sorted(cycle)))
    return graph
