"""Tests for CargoResolver with cargo itself mocked out."""

from __future__ import annotations

import subprocess
import tomllib
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from lockledger.collaborators import CargoResolver, ManifestResolver, synthetic_manifest
from lockledger.core.graph import PackageIdentity
from lockledger.exceptions import ResolutionError

LOCK_TEXT = 'version = 3\n\n[[package]]\nname = "serde"\nversion = "1.0.200"\n'


def _fake_cargo(returncode: int = 0, stderr: str = "", write_lock: bool = True):
    """Build a subprocess.run replacement that mimics generate-lockfile."""
    seen: dict[str, Any] = {}

    def run(argv: list[str], *, cwd: Path, **kwargs: Any) -> subprocess.CompletedProcess:
        seen["argv"] = argv
        seen["manifest"] = (Path(cwd) / "Cargo.toml").read_text()
        seen["lib_rs"] = (Path(cwd) / "src" / "lib.rs").exists()
        if write_lock:
            (Path(cwd) / "Cargo.lock").write_text(LOCK_TEXT)
        return subprocess.CompletedProcess(argv, returncode, stdout="", stderr=stderr)

    return run, seen


@pytest.fixture
def cargo_present():
    with patch("lockledger.collaborators.cargo_resolver.shutil.which", return_value="/usr/bin/cargo"):
        yield


class TestSyntheticManifest:
    def test_pins_exact_version(self) -> None:
        data = tomllib.loads(synthetic_manifest(PackageIdentity("serde", "1.0.200")))
        assert data["dependencies"] == {"serde": "=1.0.200"}
        assert data["package"]["name"] == "lockledger-track"


class TestResolve:
    def test_protocol(self) -> None:
        assert isinstance(CargoResolver(), ManifestResolver)

    def test_returns_lock_text(self, cargo_present) -> None:
        run, seen = _fake_cargo()
        with patch("lockledger.collaborators.cargo_resolver.subprocess.run", side_effect=run):
            assert CargoResolver().resolve("[package]\nname = 'x'\n") == LOCK_TEXT
        assert seen["argv"][:2] == ["cargo", "generate-lockfile"]
        assert seen["argv"][2] == "--manifest-path"
        assert seen["manifest"] == "[package]\nname = 'x'\n"
        assert seen["lib_rs"]

    def test_custom_cargo(self) -> None:
        run, seen = _fake_cargo()
        with patch("lockledger.collaborators.cargo_resolver.shutil.which", return_value="/opt/cargo"), \
                patch("lockledger.collaborators.cargo_resolver.subprocess.run", side_effect=run):
            CargoResolver(cargo="/opt/cargo").resolve("")
        assert seen["argv"][0] == "/opt/cargo"

    def test_cargo_missing(self) -> None:
        with patch("lockledger.collaborators.cargo_resolver.shutil.which", return_value=None):
            with pytest.raises(ResolutionError, match="not found"):
                CargoResolver().resolve("")

    def test_cargo_fails(self, cargo_present) -> None:
        run, _ = _fake_cargo(returncode=101, stderr="error: no matching package named `nope`\n",
                             write_lock=False)
        with patch("lockledger.collaborators.cargo_resolver.subprocess.run", side_effect=run):
            with pytest.raises(ResolutionError, match="no matching package"):
                CargoResolver().resolve("")

    def test_timeout(self, cargo_present) -> None:
        timeout = subprocess.TimeoutExpired(cmd="cargo", timeout=1)
        with patch("lockledger.collaborators.cargo_resolver.subprocess.run", side_effect=timeout):
            with pytest.raises(ResolutionError, match="timed out"):
                CargoResolver(timeout=1).resolve("")

    def test_no_lock_produced(self, cargo_present) -> None:
        run, _ = _fake_cargo(write_lock=False)
        with patch("lockledger.collaborators.cargo_resolver.subprocess.run", side_effect=run):
            with pytest.raises(ResolutionError, match="lock file"):
                CargoResolver().resolve("")
