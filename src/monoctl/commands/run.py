"""Command: run a lifecycle script in each package."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from monoctl.commands._context import explicit_params

if TYPE_CHECKING:
    from monoctl.commands._context import AppContext


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("script")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.option("--stream", is_flag=True, default=None, help="Stream output with package prefixes.")
@click.option(
    "--parallel",
    is_flag=True,
    default=None,
    help="Run in all packages at once, ignoring concurrency and order.",
)
@click.option("--prefix/--no-prefix", default=None, help="Prefix streamed lines with the package name.")
@click.option("--bail/--no-bail", default=None, help="Stop at the first failing package.")
@click.option("--npm-client", default=None, help="Package manager binary to run (default: npm).")
@click.option("--registry", default=None, help="Registry URL passed to the package manager.")
@click.pass_context
def run(ctx: click.Context, **_params: object) -> None:
    """Run SCRIPT in every package that defines it.

    \b
    Examples:
      monoctl run build
      monoctl --concurrency 2 run test -- --coverage
      monoctl run dev --parallel
    """
    from monoctl.services.run import RunCommand

    app: AppContext = ctx.obj
    results = app.launch(RunCommand, **explicit_params(ctx))
    if results and any(result.failed for result in results.values()):
        ctx.exit(1)
