"""AppContext: shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Holds the global CLI values and launches lifecycle
commands, translating their failures into process exit codes.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import click
from click.core import ParameterSource

from monoctl.domain.errors import ErrorKind, classify

if TYPE_CHECKING:
    from monoctl.services.lifecycle import Command


def explicit_params(ctx: click.Context) -> dict[str, Any]:
    """Parameters the user actually supplied.

    Click fills unset options with their defaults; forwarding those would
    shadow values from monoctl.toml.
    """
    return {
        name: value
        for name, value in ctx.params.items()
        if ctx.get_parameter_source(name) not in (None, ParameterSource.DEFAULT)
    }


def exit_code_for(exc: BaseException) -> int:
    """Process exit status for a failed command."""
    if classify(exc) is ErrorKind.PACKAGE:
        code = getattr(exc, "exit_code", None)
        if isinstance(code, int) and code > 0:
            return code
    return 1


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, global_argv: Mapping[str, Any]) -> None:
        self.global_argv = dict(global_argv)

    def launch(self, command_cls: type[Command], **argv: Any) -> Any:
        """Run *command_cls* with global + subcommand argv.

        The lifecycle has already reported any failure, so only the exit
        status is decided here.
        """
        command = command_cls({**self.global_argv, **argv})
        try:
            return command.run_sync()
        except Exception as exc:
            raise SystemExit(exit_code_for(exc)) from exc
