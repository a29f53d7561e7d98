"""Post-save hooks for the package database.

A hook runs only after the ledger has been saved successfully. Hook failures
are logged and reported through the return value; they never undo the save.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class SaveHook(Protocol):
    """Side effect to run after the ledger file has been written."""

    def after_save(self, path: Path, message: str) -> bool:
        """Run the hook for the ledger at *path*. Return True on success."""
        ...


class GitCommitHook:
    """Commit the ledger file into a git repository in its own directory.

    The repository is initialized on first use. A commit with nothing to
    commit counts as success.

    Args:
        git: Name or path of the git executable.
    """

    def __init__(self, git: str = "git") -> None:
        self._git = git

    def _run(self, args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [self._git, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )

    def after_save(self, path: Path, message: str) -> bool:
        if shutil.which(self._git) is None:
            logger.warning("git not found; database changes not committed")
            return False

        directory = path.parent
        try:
            if not (directory / ".git").exists():
                init = self._run(["init"], directory)
                if init.returncode != 0:
                    logger.warning("git init failed in %s: %s", directory, init.stderr.strip())
                    return False

            add = self._run(["add", path.name], directory)
            if add.returncode != 0:
                logger.warning("git add failed for %s: %s", path, add.stderr.strip())
                return False

            status = self._run(["diff", "--cached", "--quiet", "--", path.name], directory)
            if status.returncode == 0:
                logger.debug("No database changes to commit")
                return True

            commit = self._run(["commit", "-m", message, "--", path.name], directory)
        except OSError as exc:
            logger.warning("Failed to run git for %s: %s", path, exc)
            return False

        if commit.returncode != 0:
            logger.warning("git commit failed for %s: %s", path, commit.stderr.strip())
            return False
        logger.info("Committed database changes: %s", message)
        return True
