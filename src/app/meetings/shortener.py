"""Async HTTP client for the external URL shortening service.

The shortener exposes ``POST {base_url}/api/shorten`` taking
``{"originalUrl": ...}`` and answering ``{"shortUrl": ...}`` on success or
``{"error": ...}`` on failure. Any failure is raised as DependencyError so
that meeting creation fails as a whole; there is no fallback to the long URL
and no retry here.
"""

from __future__ import annotations

import httpx
import structlog

from src.app.meetings.errors import DependencyError

logger = structlog.get_logger(__name__)


class UrlShortenerClient:
    """Client for the link shortening collaborator.

    Args:
        base_url: Root URL of the shortener; empty means "not configured".
        timeout: Request timeout in seconds.
    """

    def __init__(self, base_url: str, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    def _client(self) -> httpx.AsyncClient:
        """Create a new httpx client with the configured timeout."""
        return httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )

    async def shorten(self, url: str) -> str:
        """Return the shortened form of ``url``.

        Raises:
            DependencyError: Shortener not configured, unreachable, timed out,
                answered with a non-2xx status, or returned no shortUrl.
        """
        if not self.configured:
            logger.error("shortener.not_configured")
            raise DependencyError("URL shortener service is not configured.")

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._base_url}/api/shorten",
                    json={"originalUrl": url},
                )
        except httpx.HTTPError as exc:
            logger.error("shortener.unreachable", error=str(exc))
            raise DependencyError("Failed to shorten URL.") from exc

        if response.is_error:
            message = _error_message(response) or "Failed to shorten URL."
            logger.error(
                "shortener.failed",
                status_code=response.status_code,
                error=message,
            )
            raise DependencyError(message)

        try:
            body = response.json()
        except ValueError as exc:
            raise DependencyError("URL shortener returned an invalid response.") from exc

        short_url = body.get("shortUrl") if isinstance(body, dict) else None
        if not isinstance(short_url, str) or not short_url:
            logger.error("shortener.missing_short_url", status_code=response.status_code)
            raise DependencyError("URL shortener returned an invalid response.")

        logger.info("shortener.shortened", short_url=short_url)
        return short_url


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return None
