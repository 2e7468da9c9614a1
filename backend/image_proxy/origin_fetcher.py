"""
Origin Fetcher

Retrieves raw image bytes from the upstream image host.
No caching of its own: the resolver decides when a fetch is needed.
"""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .errors import OriginUnavailableError
from .models import LogicalPath

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN_URL = "https://cdn.intra.42.fr"
DEFAULT_TIMEOUT = 30.0


class OriginFetcher:
    """
    Fetches assets from a fixed origin.

    Usage:
        fetcher = OriginFetcher("https://origin.example")
        data = await fetcher.fetch(LogicalPath.parse("users/1/avatar.jpg"))
        await fetcher.close()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_ORIGIN_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = httpx.URL(base_url)
        self._owns_client = client is None
        self.http_client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
        )
        self.fetch_count = 0

    async def close(self):
        """Close HTTP client if we created it."""
        if self._owns_client:
            await self.http_client.aclose()

    def url_for(self, path: LogicalPath) -> httpx.URL:
        """Place the logical path under the origin's base path."""
        # Segments are percent-encoded so "?" and "#" stay part of the path
        prefix = quote(self.base_url.path.rstrip("/"), safe="/")
        encoded = quote(path.value, safe="/")
        raw_path = f"{prefix}/{encoded}"
        return self.base_url.copy_with(raw_path=raw_path.encode("ascii"))

    async def fetch(self, path: LogicalPath) -> bytes:
        """
        Download one asset.

        The status code is not checked: whatever body the origin returns is
        handed back. Only transport failures are errors.

        Raises:
            OriginUnavailableError: DNS, connection, timeout or protocol failure
        """
        try:
            url = self.url_for(path)
        except httpx.InvalidURL as e:
            raise OriginUnavailableError(f"cannot build origin URL for {path}") from e

        self.fetch_count += 1
        logger.info(f"[OriginFetcher] Fetching: {url}")

        try:
            response = await self.http_client.get(url)
        except httpx.TimeoutException as e:
            raise OriginUnavailableError(f"timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise OriginUnavailableError(f"failed to fetch {url}") from e

        if not response.is_success:
            logger.warning(
                f"[OriginFetcher] Origin answered {response.status_code} for {url}, "
                f"keeping body anyway"
            )

        data = response.content
        logger.info(f"[OriginFetcher] Fetched: {url} ({len(data)} bytes)")
        return data
