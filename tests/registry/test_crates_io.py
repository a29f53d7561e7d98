"""Tests for CratesIoFetcher — all HTTP calls mocked.

Validates version selection, metadata mapping, the per-version fallback
request, and error mapping.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from lockledger.collaborators import MetadataFetcher, PackageMetadata
from lockledger.core.graph import PackageIdentity
from lockledger.exceptions import NetworkError, NotFoundError
from lockledger.registry import CratesIoFetcher
from lockledger.registry.crates_io import CRATES_IO_API


# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------


def _make_crate(
    name: str = "serde",
    max_stable: str | None = "1.0.200",
    max_version: str = "1.0.201-rc.1",
    versions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a mock ``/crates/{name}`` response."""
    if versions is None:
        versions = [
            {"num": "1.0.201-rc.1", "license": "MIT OR Apache-2.0", "yanked": False},
            {"num": "1.0.200", "license": "MIT OR Apache-2.0", "yanked": False},
            {"num": "1.0.199", "license": "MIT OR Apache-2.0", "yanked": True},
        ]
    return {
        "crate": {
            "name": name,
            "max_stable_version": max_stable,
            "max_version": max_version,
            "description": "  A serialization framework  ",
            "homepage": "https://serde.rs",
            "repository": "https://github.com/serde-rs/serde",
        },
        "versions": versions,
    }


@pytest.fixture
def fetcher() -> CratesIoFetcher:
    return CratesIoFetcher()


def _patch_fetch_json(**kwargs: Any) -> Any:
    """Patch fetch_json as seen by the crates.io fetcher."""
    return patch("lockledger.registry.crates_io.fetch_json", **kwargs)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestProtocol:
    def test_is_metadata_fetcher(self, fetcher: CratesIoFetcher) -> None:
        assert isinstance(fetcher, MetadataFetcher)


class TestVersionSelection:
    """Tests for which version a fetch resolves to."""

    def test_latest_stable(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(return_value=_make_crate()) as mock:
            identity, meta = fetcher.fetch("serde")
        assert identity == PackageIdentity("serde", "1.0.200")
        mock.assert_called_once()
        assert mock.call_args.args[0] == f"{CRATES_IO_API}/crates/serde"

    def test_falls_back_to_max_version(self, fetcher: CratesIoFetcher) -> None:
        data = _make_crate(max_stable=None)
        with _patch_fetch_json(return_value=data):
            identity, _ = fetcher.fetch("serde")
        assert identity.version == "1.0.201-rc.1"

    def test_explicit_version(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(return_value=_make_crate()):
            identity, meta = fetcher.fetch("serde", "1.0.199")
        assert identity == PackageIdentity("serde", "1.0.199")
        assert meta.yanked

    def test_canonical_name_from_registry(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(return_value=_make_crate(name="Inflector", max_stable="0.11.4",
                                                        versions=[{"num": "0.11.4"}])):
            identity, _ = fetcher.fetch("inflector")
        assert identity.name == "Inflector"

    def test_version_missing_from_listing_is_fetched(self, fetcher: CratesIoFetcher) -> None:
        responses = [
            _make_crate(versions=[]),
            {"version": {"num": "1.0.1", "license": "MIT", "yanked": False}},
        ]
        with _patch_fetch_json(side_effect=responses) as mock:
            identity, meta = fetcher.fetch("serde", "1.0.1")
        assert identity.version == "1.0.1"
        assert meta.license == "MIT"
        assert mock.call_args.args[0] == f"{CRATES_IO_API}/crates/serde/1.0.1"

    def test_no_versions_at_all(self, fetcher: CratesIoFetcher) -> None:
        data = _make_crate(max_stable=None, max_version="", versions=[])
        with _patch_fetch_json(return_value=data):
            with pytest.raises(NotFoundError):
                fetcher.fetch("serde")

    def test_invalid_requested_version(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(return_value=_make_crate()):
            with pytest.raises(NotFoundError):
                fetcher.fetch("serde", "latest")

    def test_custom_base_url(self) -> None:
        fetcher = CratesIoFetcher(base_url="https://mirror.example.com/api/v1/")
        with _patch_fetch_json(return_value=_make_crate()) as mock:
            fetcher.fetch("serde")
        assert mock.call_args.args[0] == "https://mirror.example.com/api/v1/crates/serde"


class TestMetadata:
    def test_fields(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(return_value=_make_crate()):
            _, meta = fetcher.fetch("serde")
        assert meta == PackageMetadata(
            license="MIT OR Apache-2.0",
            description="A serialization framework",
            homepage="https://serde.rs",
            repository="https://github.com/serde-rs/serde",
            yanked=False,
        )


class TestErrors:
    """Errors from the HTTP layer pass through with their type."""

    def test_unknown_crate(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(side_effect=NotFoundError("Not found")):
            with pytest.raises(NotFoundError):
                fetcher.fetch("no-such-crate")

    def test_network_error(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(side_effect=NetworkError("timeout")):
            with pytest.raises(NetworkError):
                fetcher.fetch("serde")

    def test_unexpected_payload(self, fetcher: CratesIoFetcher) -> None:
        with _patch_fetch_json(return_value={"errors": []}):
            with pytest.raises(NetworkError):
                fetcher.fetch("serde")

    def test_unknown_version(self, fetcher: CratesIoFetcher) -> None:
        responses = [_make_crate(), NotFoundError("Not found")]
        with _patch_fetch_json(side_effect=responses):
            with pytest.raises(NotFoundError):
                fetcher.fetch("serde", "9.9.9")
