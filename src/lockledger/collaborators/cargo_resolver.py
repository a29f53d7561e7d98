"""Manifest resolution through ``cargo generate-lockfile``.

lockledger never solves version constraints itself. A manifest is copied
into a scratch directory, cargo is asked to produce the lock file, and the
resulting text is handed back to the graph parser.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from lockledger.core.graph.identity import PackageIdentity
from lockledger.exceptions import ResolutionError

logger = logging.getLogger(__name__)

# Name of the throwaway package wrapping a single crate requirement.
_SYNTHETIC_PACKAGE = "lockledger-track"


def synthetic_manifest(identity: PackageIdentity) -> str:
    """Return a manifest depending on exactly *identity*.

    Resolving it yields a lock file containing the crate and its full
    transitive dependency closure.
    """
    return (
        "[package]\n"
        f'name = "{_SYNTHETIC_PACKAGE}"\n'
        'version = "0.0.0"\n'
        'edition = "2021"\n'
        "publish = false\n"
        "\n"
        "[dependencies]\n"
        f'{identity.name} = "={identity.version}"\n'
    )


class CargoResolver:
    """``ManifestResolver`` running cargo in a temporary directory.

    Args:
        cargo: Name or path of the cargo executable.
        timeout: Seconds to wait for cargo. None waits forever.
    """

    def __init__(self, cargo: str = "cargo", timeout: float | None = None) -> None:
        self._cargo = cargo
        self._timeout = timeout

    def resolve(self, manifest_text: str) -> str:
        if shutil.which(self._cargo) is None:
            raise ResolutionError(
                f"{self._cargo!r} not found; install Rust or pass a Cargo.lock instead"
            )

        with tempfile.TemporaryDirectory(prefix="lockledger-resolve-") as tmp:
            project = Path(tmp)
            manifest = project / "Cargo.toml"
            manifest.write_text(manifest_text, encoding="utf-8")
            # cargo refuses a [package] without any target.
            src = project / "src"
            src.mkdir()
            (src / "lib.rs").write_text("", encoding="utf-8")

            logger.info("Generating Cargo.lock with %s", self._cargo)
            try:
                proc = subprocess.run(
                    [self._cargo, "generate-lockfile", "--manifest-path", str(manifest)],
                    cwd=project,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise ResolutionError(f"cargo generate-lockfile timed out after {self._timeout:g}s") from exc
            except OSError as exc:
                raise ResolutionError(f"Failed to run {self._cargo}: {exc}") from exc

            if proc.returncode != 0:
                raise ResolutionError(
                    f"cargo generate-lockfile failed (status {proc.returncode}): "
                    f"{proc.stderr.strip() or 'no output'}"
                )

            lockfile = project / "Cargo.lock"
            try:
                return lockfile.read_text(encoding="utf-8")
            except OSError as exc:
                raise ResolutionError(f"cargo did not produce a lock file: {exc}") from exc
