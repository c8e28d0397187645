"""Root CLI group for monoctl with global flags and command registration."""

from __future__ import annotations

import click

from monoctl import __version__
from monoctl.commands import register_commands
from monoctl.commands._context import AppContext, explicit_params
from monoctl.config.logging import LEVELS


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="monoctl")
@click.option(
    "-C",
    "--cwd",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Run as if started in this directory.",
)
@click.option("--loglevel", type=click.Choice(list(LEVELS)), default=None, help="Log verbosity.")
@click.option("-v", "--verbose", is_flag=True, default=None, help="Shorthand for --loglevel verbose.")
@click.option("--log-json", is_flag=True, default=None, help="Structured JSON log output to stderr.")
@click.option("--concurrency", type=int, default=None, help="Max parallel child processes.")
@click.option("--sort/--no-sort", default=None, help="Respect dependency order.")
@click.option("--progress/--no-progress", default=None, help="Show progress output.")
@click.option("--ci/--no-ci", default=None, help="Force CI behavior on or off.")
@click.option("--max-buffer", type=int, default=None, help="Max captured bytes per output stream.")
@click.option("--independent", is_flag=True, default=None, help="Version packages independently.")
@click.pass_context
def cli(ctx: click.Context, **_params: object) -> None:
    """monoctl: run commands across the packages of a monorepo."""
    ctx.obj = AppContext(explicit_params(ctx))
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
