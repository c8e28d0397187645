"""RunCommand: run a package.json script in every package that defines it."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import click

from monoctl.config.logging import SUCCESS
from monoctl.domain.errors import ValidationError
from monoctl.infrastructure.run_script import npm_run_script, npm_run_script_streaming
from monoctl.services.lifecycle import Command
from monoctl.services.scheduler import run_parallel, run_topologically

if TYPE_CHECKING:
    from monoctl.domain.package import Package
    from monoctl.infrastructure.process import ProcessResult


class RunCommand(Command):
    """Options read: ``script``, ``args``, ``npm_client``, ``stream``,
    ``parallel``, ``prefix``, ``bail``, ``registry``.
    """

    requires_git = False

    script: str
    args: list[str]
    packages: list[Package]

    def initialize(self) -> bool:
        assert self.options is not None
        assert self.package_graph is not None
        script = self.options.get("script")
        if not script:
            raise ValidationError("ENOSCRIPT", "You must specify a lifecycle script to run")

        self.script = script
        self.args = [str(arg) for arg in self.options.get("args", ())]
        self.npm_client = self.options.npm_client or "npm"
        self.bail = self.options.get("bail", True) is not False
        self.prefix = self.options.get("prefix", True) is not False
        self.parallel = bool(self.options.get("parallel", False))
        self.stream = bool(self.options.stream) or self.parallel

        self.packages = [pkg for pkg in self.package_graph.packages if script in pkg.scripts]
        if not self.packages:
            self.logger.log(SUCCESS, "No packages found with the lifecycle script %r", script)
            return False

        self.logger.info(
            "Executing command in %d package(s): %s",
            len(self.packages),
            " ".join([self.npm_client, "run", script, *self.args]),
        )
        return True

    async def execute(self) -> dict[str, ProcessResult]:
        assert self.package_graph is not None
        assert self.concurrency is not None
        started = time.perf_counter()

        if self.parallel:
            results = await run_parallel(
                self.packages, self._run_script, concurrency=len(self.packages)
            )
        elif self.toposort:
            selected = {pkg.name for pkg in self.packages}

            async def _selected_only(pkg: Package) -> ProcessResult | None:
                if pkg.name not in selected:
                    return None
                return await self._run_script(pkg)

            ordered = await run_topologically(
                self.package_graph, _selected_only, concurrency=self.concurrency
            )
            results = {name: result for name, result in ordered.items() if result is not None}
        else:
            results = await run_parallel(
                self.packages, self._run_script, concurrency=self.concurrency
            )

        failed = sorted(name for name, result in results.items() if result.failed)
        if failed:
            self.logger.error(
                "Lifecycle script %r failed in %d package(s): %s",
                self.script,
                len(failed),
                ", ".join(failed),
            )
        else:
            self.logger.log(
                SUCCESS,
                "Ran npm script %r in %d package(s) in %.1fs",
                self.script,
                len(results),
                time.perf_counter() - started,
            )
        return results

    async def _run_script(self, pkg: Package) -> ProcessResult:
        assert self.options is not None
        if self.stream:
            color = self.env_defaults.color if self.env_defaults else None
            return await npm_run_script_streaming(
                self.script,
                pkg=pkg,
                args=self.args,
                npm_client=self.npm_client,
                prefix=self.prefix,
                color=bool(color),
                reject=self.bail,
                registry=self.options.registry,
            )

        result = await npm_run_script(
            self.script,
            pkg=pkg,
            args=self.args,
            npm_client=self.npm_client,
            reject=self.bail,
            max_buffer=self.exec_opts.max_buffer if self.exec_opts else None,
            registry=self.options.registry,
        )
        if result.stdout:
            click.echo(result.stdout)
        return result
