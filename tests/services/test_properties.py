"""Tests for derived command properties."""

from __future__ import annotations

from pathlib import Path

import pytest

from monoctl.config.settings import CommandOptions
from monoctl.services.properties import DEFAULT_CONCURRENCY, derive_properties, parse_concurrency


class TestParseConcurrency:
    @pytest.mark.parametrize("value", [None, 0, "0", "", "many", True, float("nan")])
    def test_falls_back_to_default(self, value: object) -> None:
        assert parse_concurrency(value, default=6) == 6

    @pytest.mark.parametrize(("value", "expected"), [(4, 4), ("3", 3), (2.7, 2), ("-5", 1), (-1, 1)])
    def test_numeric(self, value: object, expected: int) -> None:
        assert parse_concurrency(value, default=6) == expected

    def test_default_is_cpu_count(self) -> None:
        assert parse_concurrency(None) == max(1, DEFAULT_CONCURRENCY)


class TestDeriveProperties:
    def test_defaults(self, tmp_path: Path) -> None:
        props = derive_properties(CommandOptions.resolve({}), tmp_path)
        assert props.concurrency == DEFAULT_CONCURRENCY
        assert props.toposort is True
        assert props.exec_opts.cwd == tmp_path
        assert props.exec_opts.max_buffer is None

    def test_no_sort(self, tmp_path: Path) -> None:
        props = derive_properties(CommandOptions.resolve({"sort": False}), tmp_path)
        assert props.toposort is False

    def test_explicit_sort(self, tmp_path: Path) -> None:
        props = derive_properties(CommandOptions.resolve({"sort": True}), tmp_path)
        assert props.toposort is True

    def test_concurrency_and_buffer(self, tmp_path: Path) -> None:
        opts = CommandOptions.resolve({"concurrency": "2"}, global_config={"max_buffer": 1024})
        props = derive_properties(opts, tmp_path)
        assert props.concurrency == 2
        assert props.exec_opts.max_buffer == 1024
