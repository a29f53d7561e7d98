"""Shared fixtures for lockledger tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from click.testing import CliRunner

from lockledger.collaborators import ArtifactHandle
from lockledger.core.graph import PackageIdentity
from lockledger.exceptions import GenerationError

# A small but realistic lock file: a workspace member, registry crates in a
# diamond (two versions of rand_core) and one git dependency.
SAMPLE_LOCK = """\
# This file is automatically @generated by Cargo.
# It is not intended for manual editing.
version = 3

[[package]]
name = "app"
version = "0.1.0"
dependencies = [
 "rand",
 "serde",
 "vendored",
]

[[package]]
name = "rand"
version = "0.8.5"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "34af8d1a0e25924bc5b7c43c079c942339d8f0a8b57c39049bef581b46327404"
dependencies = [
 "rand_core 0.6.4",
]

[[package]]
name = "rand_core"
version = "0.5.1"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "90bde5296fc891b0cef12a6d03ddccc162ce7b2aff54160af9338f8d40df6d19"

[[package]]
name = "rand_core"
version = "0.6.4"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "ec0be4795e2f6a28069bec0b5ff3e2ac9bafc99e6a9a7dc3547996c5c816922c"

[[package]]
name = "serde"
version = "1.0.200"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "ddc6f9cc94d67c0e21aaf7eda3a010fd3af78ebf6e096aa6e2e13c79749cce4f"
dependencies = [
 "serde_derive",
]

[[package]]
name = "serde_derive"
version = "1.0.200"
source = "registry+https://github.com/rust-lang/crates.io-index"
checksum = "856f046b9400cee3c8c94ed572ecdb752444c24528c035cd35882aad6f492bcb"

[[package]]
name = "vendored"
version = "0.3.0"
source = "git+https://example.com/vendored.git#abcdef"
dependencies = [
 "serde",
]
"""

SAMPLE_MANIFEST = """\
[package]
name = "app"
version = "0.1.0"
edition = "2021"

[dependencies]
serde = "1"
"""


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


class FakeGenerator:
    """Records calls; fails for identities listed in *failing*."""

    def __init__(self, failing: set[PackageIdentity] | None = None) -> None:
        self.failing = failing or set()
        self.calls: list[PackageIdentity] = []

    def generate(self, identity: PackageIdentity) -> ArtifactHandle:
        self.calls.append(identity)
        if identity in self.failing:
            raise GenerationError(identity, "boom")
        return ArtifactHandle(identity=identity, path=Path("/artifacts") / identity.name)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_generator():
    """Factory for generators failing on the given identities."""

    def _make(*failing: PackageIdentity) -> FakeGenerator:
        return FakeGenerator(set(failing))

    return _make


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_lock() -> str:
    return SAMPLE_LOCK


@pytest.fixture
def lock_file(tmp_path: Path) -> Path:
    """Write the sample lock file under a project directory."""
    project = tmp_path / "app"
    project.mkdir()
    path = project / "Cargo.lock"
    path.write_text(SAMPLE_LOCK)
    return path


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger" / "package_db.json"


@pytest.fixture
def sample_manifest() -> str:
    return SAMPLE_MANIFEST


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config, ledger and default output directories inside tmp_path."""
    home = tmp_path / "lockledger-home"
    monkeypatch.setenv("LOCKLEDGER_HOME", str(home))
    monkeypatch.delenv("LOCKLEDGER_DB", raising=False)
    monkeypatch.chdir(tmp_path)
    return home


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()
