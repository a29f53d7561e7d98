"""crates.io metadata fetcher.

Resolves a crate name (and optional version) to an exact ``PackageIdentity``
plus the metadata a packaging template needs: license, description and
project links.

Usage::

    fetcher = CratesIoFetcher()
    identity, meta = fetcher.fetch("serde")          # newest stable
    identity, meta = fetcher.fetch("serde", "1.0.200")
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from lockledger.collaborators.base import PackageMetadata
from lockledger.core.graph.identity import PackageIdentity, validate_version
from lockledger.exceptions import NetworkError, NotFoundError, ParseError
from lockledger.registry.http_client import DEFAULT_TIMEOUT, fetch_json

logger = logging.getLogger(__name__)

CRATES_IO_API: str = "https://crates.io/api/v1"


def _metadata(crate: dict[str, Any], version: dict[str, Any]) -> PackageMetadata:
    return PackageMetadata(
        license=version.get("license") or None,
        description=(crate.get("description") or "").strip(),
        homepage=crate.get("homepage") or None,
        repository=crate.get("repository") or None,
        yanked=bool(version.get("yanked", False)),
    )


class CratesIoFetcher:
    """``MetadataFetcher`` backed by the crates.io web API.

    Args:
        base_url: API root, overridable for mirrors and tests.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str = CRATES_IO_API, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _crate_url(self, name: str) -> str:
        return f"{self._base_url}/crates/{quote(name, safe='')}"

    def fetch(
        self, name: str, version: str | None = None
    ) -> tuple[PackageIdentity, PackageMetadata]:
        """Resolve *name* (and *version*) against crates.io.

        Without *version* the newest stable release is chosen, falling back
        to the newest release of any kind.

        Raises:
            NotFoundError: Unknown crate or version.
            NetworkError: crates.io could not be reached or answered oddly.
        """
        data = fetch_json(self._crate_url(name), timeout=self._timeout)
        crate = data.get("crate")
        if not isinstance(crate, dict):
            raise NetworkError(f"crates.io response for {name!r} has no 'crate' object")
        versions = [v for v in data.get("versions") or [] if isinstance(v, dict)]

        if version is None:
            chosen = crate.get("max_stable_version") or crate.get("max_version")
            if not chosen:
                raise NotFoundError(f"Crate {name!r} has no published versions")
        else:
            chosen = version.strip()

        try:
            chosen = validate_version(chosen, package=name)
        except ParseError as exc:
            raise NotFoundError(str(exc)) from exc

        entry = next((v for v in versions if v.get("num") == chosen), None)
        if entry is None:
            # The crate listing can be truncated; ask for the version directly.
            detail = fetch_json(
                f"{self._crate_url(name)}/{quote(chosen, safe='')}",
                timeout=self._timeout,
            )
            entry = detail.get("version")
            if not isinstance(entry, dict):
                raise NotFoundError(f"Version {chosen} of {name!r} not found")

        real_name = crate.get("name") or name
        identity = PackageIdentity(name=real_name, version=chosen)
        meta = _metadata(crate, entry)
        if meta.yanked:
            logger.warning("%s is yanked on crates.io", identity)
        logger.debug("Resolved %s %s to %s", name, version or "(latest)", identity)
        return identity, meta
