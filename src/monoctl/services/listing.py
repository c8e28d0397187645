"""ListCommand: show the project's packages."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import click

from monoctl.output.renderers import render_packages
from monoctl.services.lifecycle import Command

if TYPE_CHECKING:
    from monoctl.domain.package import Package


class ListCommand(Command):
    """Options read: ``all`` (include private packages), ``json_output``."""

    requires_git = False

    packages: list[Package]

    def initialize(self) -> None:
        assert self.options is not None
        assert self.package_graph is not None
        if self.toposort:
            ordered = [pkg for batch in self.package_graph.topological_batches() for pkg in batch]
        else:
            ordered = sorted(self.package_graph.packages, key=lambda pkg: pkg.name)
        include_private = bool(self.options.get("all", False))
        self.packages = [pkg for pkg in ordered if include_private or not pkg.private]

    def execute(self) -> list[Package]:
        assert self.options is not None
        if self.options.get("json_output", False):
            payload = [
                {
                    "name": pkg.name,
                    "version": pkg.version,
                    "private": pkg.private,
                    "location": str(pkg.location),
                }
                for pkg in self.packages
            ]
            click.echo(json.dumps(payload, indent=2))
        elif self.packages:
            click.echo(render_packages(self.packages))
        self.logger.info("found %d package(s)", len(self.packages))
        return self.packages
