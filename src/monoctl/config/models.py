"""Pydantic model of monoctl.toml.

Sparse TOML contract: only ``version`` is required for a usable project.
Every other top-level key is a global option shared by all commands;
``[command.<name>]`` tables hold options scoped to one command.

Example::

    version = "1.2.0"
    packages = ["packages/*", "tools/*"]
    npm_client = "pnpm"
    use_workspaces = true

    [command.run]
    stream = true
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

INDEPENDENT_VERSION = "independent"
DEFAULT_PACKAGE_GLOBS = ("packages/*",)


class ProjectConfig(BaseModel):
    """Root of monoctl.toml. Unknown keys are kept as global options."""

    model_config = {"frozen": True, "extra": "allow"}

    version: str | None = None
    packages: list[str] | None = None
    use_workspaces: bool | None = None
    npm_client: str | None = None
    command: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def package_globs(self) -> list[str]:
        return list(self.packages) if self.packages else list(DEFAULT_PACKAGE_GLOBS)

    def command_section(self, name: str) -> dict[str, Any]:
        """Options from ``[command.<name>]`` (empty when absent)."""
        return dict(self.command.get(name) or {})

    def global_options(self) -> dict[str, Any]:
        """Top-level keys that were actually written in the file."""
        options = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name in type(self).model_fields and name != "command"
        }
        options.update(self.model_extra or {})
        return options
