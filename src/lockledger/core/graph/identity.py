"""Package identities and version helpers.

A ``PackageIdentity`` is the ``(name, version)`` pair that uniquely denotes
one package instance in a resolved dependency graph. Two identities with the
same name and different versions are distinct: diamond dependencies routinely
pull several versions of one crate into a single lock file.

Versions follow SemVer 2.0.0, which is what Cargo lock files record.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from lockledger.exceptions import ParseError

# ---------------------------------------------------------------------------
# Version parsing
# ---------------------------------------------------------------------------

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)


def validate_version(version: str, *, package: str = "") -> str:
    """Return *version* unchanged if it is a valid semantic version.

    Args:
        version: Version string read from lock data.
        package: Package name, used only to make the error message useful.

    Returns:
        The version string, stripped of surrounding whitespace.

    Raises:
        ParseError: If *version* is not a semantic version.
    """
    stripped = version.strip()
    if not _SEMVER_RE.match(stripped):
        where = f" for package {package!r}" if package else ""
        raise ParseError(f"Invalid version {version!r}{where}")
    return stripped


def version_key(version: str) -> tuple[int, int, int, int, str]:
    """Sort key implementing SemVer precedence closely enough for lock data.

    Build metadata is ignored and a pre-release sorts below its release.
    Pre-release identifiers are compared as plain strings.
    """
    m = _SEMVER_RE.match(version.strip())
    if not m:
        raise ValueError(f"Invalid semantic version: {version!r}")
    pre = m.group("pre") or ""
    return (
        int(m.group("major")),
        int(m.group("minor")),
        int(m.group("patch")),
        0 if pre else 1,
        pre,
    )


def compat_version(version: str) -> str:
    """Return the Cargo compatibility series of *version*.

    - ``1.4.2`` -> ``1.0`` (major-version compatibility)
    - ``0.8.23`` -> ``0.8`` (minor-version compatibility)
    - ``0.0.7`` -> ``0.0.7`` (every patch is breaking)
    - ``0.26.0-beta.1`` -> ``0.26.0-beta.1`` (pre-releases stand alone)

    Build metadata never affects the series.
    """
    m = _SEMVER_RE.match(version.strip())
    if not m:
        raise ValueError(f"Invalid semantic version: {version!r}")
    major, minor, patch = m.group("major"), m.group("minor"), m.group("patch")
    if m.group("pre"):
        return f"{major}.{minor}.{patch}-{m.group('pre')}"
    if major != "0":
        return f"{major}.0"
    if minor != "0":
        return f"0.{minor}"
    return f"0.0.{patch}"


# ---------------------------------------------------------------------------
# PackageIdentity
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class PackageIdentity:
    """One package at one exact version.

    Ordering is lexicographic on ``(name, version)``; it is the tie-breaker
    used everywhere a deterministic order is needed.
    """

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"

    @property
    def compat_version(self) -> str:
        """Cargo compatibility series of this identity's version."""
        return compat_version(self.version)
