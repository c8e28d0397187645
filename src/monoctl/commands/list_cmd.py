"""Command: list the project's packages."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from monoctl.commands._context import explicit_params

if TYPE_CHECKING:
    from monoctl.commands._context import AppContext


@click.command("list")
@click.option("-a", "--all", "all", is_flag=True, help="Include private packages.")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.pass_context
def list_cmd(ctx: click.Context, **_params: object) -> None:
    """List packages in the project."""
    from monoctl.services.listing import ListCommand

    app: AppContext = ctx.obj
    app.launch(ListCommand, **explicit_params(ctx))
