"""Rich renderers for package listings."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.table import Table
from rich.text import Text

from monoctl.output.console import create_console, get_output

if TYPE_CHECKING:
    from monoctl.domain.package import Package


def render_packages(packages: Sequence[Package], *, width: int | None = None) -> str:
    """Render packages as a name / version / location table."""
    console = create_console(width=width)
    table = Table(show_header=True, header_style="mono.header", box=None, pad_edge=False)
    table.add_column("Name", style="mono.name")
    table.add_column("Version", style="mono.version")
    table.add_column("Location", style="mono.path")

    for pkg in packages:
        version = Text(f"v{pkg.version}" if pkg.version else "MISSING")
        if pkg.private:
            version.append(" (PRIVATE)", style="mono.private")
        table.add_row(pkg.name, version, pkg.relative_location())

    console.print(table)
    return get_output(console).rstrip("\n")
