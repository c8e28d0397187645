"""Tests for Rich package renderers."""

from __future__ import annotations

from pathlib import Path

from monoctl.domain.package import Package
from monoctl.output.console import create_console, get_output
from monoctl.output.renderers import render_packages


class TestConsole:
    def test_renders_to_buffer(self) -> None:
        console = create_console(no_color=True, width=40)
        console.print("hello")
        assert get_output(console) == "hello\n"


class TestRenderPackages:
    def test_columns(self, tmp_path: Path) -> None:
        pkgs = [
            Package("pkg-a", tmp_path / "packages" / "pkg-a", {"version": "1.2.3"}, tmp_path),
            Package(
                "pkg-c",
                tmp_path / "packages" / "pkg-c",
                {"version": "0.1.0", "private": True},
                tmp_path,
            ),
        ]
        text = render_packages(pkgs, width=100)
        lines = text.splitlines()
        assert "Name" in lines[0] and "Location" in lines[0]
        assert "pkg-a" in lines[1] and "v1.2.3" in lines[1] and "packages/pkg-a" in lines[1]
        assert "v0.1.0 (PRIVATE)" in lines[2]

    def test_missing_version(self, tmp_path: Path) -> None:
        text = render_packages([Package("bare", tmp_path / "bare")], width=100)
        assert "MISSING" in text
