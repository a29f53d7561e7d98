"""Tests for ``lockledger batch``."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from lockledger.cli.main import cli
from lockledger.core.database import PackageDatabase
from lockledger.core.graph import PackageIdentity

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")


@pytest.fixture
def list_file(tmp_path: Path) -> Path:
    path = tmp_path / "todo.txt"
    path.write_text(
        "# crates to package\n"
        "serde 1.0.200\n"
        "\n"
        "anyhow 1.0.86\n"
        "broken-line\n"
        "itoa 1.0.11 extra-field\n"
    )
    return path


class TestBatch:
    def test_packages_listed_crates(self, runner, list_file: Path, db_path: Path, tmp_path: Path) -> None:
        log = tmp_path / "calls.log"
        cmd = f"sh -c 'echo \"$1 $2\" >> {log}' sh {{name}} {{version}}"
        result = runner.invoke(
            cli, ["batch", str(list_file), "--database", str(db_path),
                  "-o", str(tmp_path / "out"), "--generator-cmd", cmd],
        )
        assert result.exit_code == 0, result.output
        # No edges in a list: name order.
        assert log.read_text().splitlines() == ["anyhow 1.0.86", "itoa 1.0.11", "serde 1.0.200"]
        assert len(PackageDatabase.load(db_path).processed()) == 3

    def test_already_processed_skipped(
        self, runner, list_file: Path, db_path: Path, tmp_path: Path, now
    ) -> None:
        db = PackageDatabase()
        db.mark_processed(PackageIdentity("serde", "1.0.200"), now)
        db.save(db_path)

        result = runner.invoke(
            cli, ["batch", str(list_file), "--database", str(db_path), "--plan", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["source"] == "todo.txt"
        assert [e["name"] for e in data["frontier"]] == ["anyhow", "itoa"]

    def test_action_file_round_trip(
        self, runner, lock_file: Path, db_path: Path, tmp_path: Path
    ) -> None:
        action = tmp_path / "plan.txt"
        plan = runner.invoke(
            cli, ["track", "-f", str(lock_file), "--database", str(db_path), "--plan",
                  "--action-file", str(action)],
        )
        assert plan.exit_code == 0, plan.output

        result = runner.invoke(
            cli, ["batch", str(action), "--database", str(db_path),
                  "-o", str(tmp_path / "out"), "--generator-cmd", "true"],
        )
        assert result.exit_code == 0, result.output
        assert len(PackageDatabase.load(db_path).processed()) == 5

    def test_failure_exit_code(self, runner, list_file: Path, db_path: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            cli, ["batch", str(list_file), "--database", str(db_path),
                  "-o", str(tmp_path / "out"),
                  "--generator-cmd", "sh -c 'test \"$LOCKLEDGER_NAME\" != itoa'"],
        )
        assert result.exit_code == 1
        db = PackageDatabase.load(db_path)
        assert db.failed() == [PackageIdentity("itoa", "1.0.11")]

    def test_invalid_version(self, runner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.txt"
        bad.write_text("serde one-point-oh\n")
        result = runner.invoke(cli, ["batch", str(bad)])
        assert result.exit_code == 2
        assert "Invalid version" in result.stderr

    def test_missing_list(self, runner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["batch", str(tmp_path / "missing.txt")])
        assert result.exit_code == 2
