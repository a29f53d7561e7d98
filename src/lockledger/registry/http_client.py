"""Shared HTTP client utilities for registry metadata fetchers.

Provides a thin wrapper around ``httpx.Client`` with standardised timeouts,
user-agent headers, and error mapping, so that every fetcher behaves the
same way and can be tested by patching ``fetch_json``.

Raises ``NotFoundError`` on HTTP 404 and ``NetworkError`` on every other
HTTP, transport or decoding failure. Retrying is left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from lockledger import __version__
from lockledger.exceptions import NetworkError, NotFoundError

logger = logging.getLogger(__name__)

# Timeout for all registry HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# crates.io rejects requests without a descriptive User-Agent.
USER_AGENT: str = f"lockledger/{__version__} (+https://pypi.org/project/lockledger/)"


def _ensure_httpx() -> Any:  # noqa: ANN401
    """Lazily import httpx and raise a friendly error if missing.

    Returns:
        The ``httpx`` module.

    Raises:
        SystemExit: If httpx is not installed.
    """
    try:
        import httpx  # noqa: F811

        return httpx
    except ImportError:
        raise SystemExit(
            "httpx is required to query package registries.\n"
            "Install it with: pip install 'lockledger[registry]'"
        )


def fetch_json(
    url: str,
    *,
    params: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Fetch a URL and parse the response as a JSON object.

    Args:
        url: The URL to fetch.
        params: Optional query parameters.
        timeout: Request timeout in seconds.

    Returns:
        Parsed JSON object.

    Raises:
        NotFoundError: The server answered 404.
        NetworkError: Any other HTTP error, timeout, or invalid JSON.
    """
    httpx = _ensure_httpx()
    try:
        with httpx.Client(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        ) as client:
            resp = client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise NetworkError(f"Timeout fetching {url}") from exc
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        if status == 404:
            raise NotFoundError(f"Not found: {url}") from exc
        logger.warning("HTTP %d from %s", status, url)
        raise NetworkError(f"HTTP {status} from {url}") from exc
    except (httpx.RequestError, ValueError) as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise NetworkError(f"Request error for {url}: {exc}") from exc

    if not isinstance(data, dict):
        raise NetworkError(f"Unexpected response from {url}: expected a JSON object")
    return data
