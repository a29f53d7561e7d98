"""Artifact generation through an external command.

The packaging step itself is out of scope for lockledger, so the CLI
delegates it to a user-supplied command template such as::

    takopack package {name} {version} --output {output}

Placeholders:
    {name}     crate name as it appears in the lock file
    {version}  exact version
    {compat}   Cargo compatibility series (``1.0``, ``0.8``, ``0.0.7``)
    {output}   absolute path of the per-package output directory

The command runs inside ``<output_dir>/rust-<name>-<compat>/`` (underscores
in the name become dashes), without a shell. When another version of the
same series already claimed that directory in this run, the version replaces
the series: ``rust-<name>-<version>/``. A nonzero exit status, a
missing executable or a timeout raises ``GenerationError``.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import threading
from pathlib import Path

from lockledger.collaborators.base import ArtifactHandle
from lockledger.core.graph.identity import PackageIdentity
from lockledger.exceptions import ConfigError, GenerationError

logger = logging.getLogger(__name__)

_PLACEHOLDERS = frozenset({"name", "version", "compat", "output"})

# Lines of stderr kept in a failure cause.
_STDERR_TAIL = 5


def artifact_dirname(identity: PackageIdentity) -> str:
    """Return the directory name used for *identity*'s artifacts."""
    return f"rust-{identity.name.replace('_', '-')}-{identity.compat_version}"


def _tail(text: str, lines: int = _STDERR_TAIL) -> str:
    kept = [line for line in text.strip().splitlines() if line.strip()]
    return " | ".join(kept[-lines:])


class CommandGenerator:
    """``ArtifactGenerator`` that shells out to a packaging command.

    Args:
        template: Command line with ``{placeholder}`` fields.
        output_dir: Base directory receiving one subdirectory per package.
        timeout: Seconds before a single command is killed. None waits forever.
        env: Extra environment variables for the command.

    Raises:
        ConfigError: If the template is empty, unparsable, or uses an
            unknown placeholder.
    """

    def __init__(
        self,
        template: str,
        output_dir: Path,
        *,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        try:
            argv = shlex.split(template)
        except ValueError as exc:
            raise ConfigError(f"Invalid generator command {template!r}: {exc}") from exc
        if not argv:
            raise ConfigError("Generator command is empty")
        for token in argv:
            try:
                token.format(**{key: "" for key in _PLACEHOLDERS})
            except (KeyError, IndexError, ValueError) as exc:
                raise ConfigError(
                    f"Invalid placeholder in generator command {template!r}: {exc}"
                ) from exc
        self._argv = argv
        self._output_dir = Path(output_dir)
        self._timeout = timeout
        self._env = dict(env or {})
        self._claims: dict[str, PackageIdentity] = {}
        self._claims_lock = threading.Lock()

    def target_for(self, identity: PackageIdentity) -> Path:
        """Return the working directory *identity* is generated in.

        The first identity of a compatibility series gets the series
        directory. A different version of the same series seen later by
        this generator gets ``rust-<name>-<version>`` instead, so that two
        packages never share a working directory.
        """
        dirname = artifact_dirname(identity)
        with self._claims_lock:
            owner = self._claims.setdefault(dirname, identity)
            if owner != identity:
                dirname = f"rust-{identity.name.replace('_', '-')}-{identity.version}"
                self._claims.setdefault(dirname, identity)
                logger.info(
                    "%s shares series directory with %s; using %s", identity, owner, dirname
                )
        return (self._output_dir / dirname).resolve()

    def command_for(self, identity: PackageIdentity, target: Path) -> list[str]:
        """Return the argument vector for *identity* writing into *target*."""
        fields = {
            "name": identity.name,
            "version": identity.version,
            "compat": identity.compat_version,
            "output": str(target),
        }
        return [token.format(**fields) for token in self._argv]

    def generate(self, identity: PackageIdentity) -> ArtifactHandle:
        target = self.target_for(identity)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise GenerationError(identity, f"cannot create {target}: {exc}") from exc

        argv = self.command_for(identity, target)
        env = {
            **os.environ,
            **self._env,
            "LOCKLEDGER_NAME": identity.name,
            "LOCKLEDGER_VERSION": identity.version,
            "LOCKLEDGER_COMPAT": identity.compat_version,
            "LOCKLEDGER_OUTPUT": str(target),
        }
        logger.debug("Running %s in %s", shlex.join(argv), target)
        try:
            proc = subprocess.run(
                argv,
                cwd=target,
                env=env,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise GenerationError(identity, f"command not found: {argv[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise GenerationError(
                identity, f"command timed out after {self._timeout:g}s"
            ) from exc
        except OSError as exc:
            raise GenerationError(identity, exc) from exc

        if proc.returncode != 0:
            detail = _tail(proc.stderr) or _tail(proc.stdout)
            cause = f"command exited with status {proc.returncode}"
            if detail:
                cause = f"{cause}: {detail}"
            raise GenerationError(identity, cause)

        files = tuple(
            sorted(str(p.relative_to(target)) for p in target.rglob("*") if p.is_file())
        )
        return ArtifactHandle(identity=identity, path=target, files=files)
