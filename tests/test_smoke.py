"""Smoke tests: the package imports and the CLI entry point answers."""

from __future__ import annotations

import lockledger
from lockledger.cli.main import cli


def test_version() -> None:
    assert lockledger.__version__ == "0.1.0"


def test_cli_version(runner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_cli_help(runner) -> None:
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "never package the same crate twice" in result.output
    for command in ("track", "batch", "show"):
        assert command in result.output


def test_verbose_and_quiet_accepted(runner) -> None:
    assert runner.invoke(cli, ["-vv", "show"]).exit_code == 0
    assert runner.invoke(cli, ["-q", "show"]).exit_code == 0
