"""Base client for Radarr/Sonarr API interactions."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import TYPE_CHECKING, Any, Self

import httpx
from cachetools import TTLCache
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from connectarr.headers import to_transport
from connectarr.models.common import Release, SystemStatus
from connectarr.models.instance import DEFAULT_TIMEOUT

if TYPE_CHECKING:
    from collections.abc import Iterable

    from connectarr.models.instance import InstanceDescriptor, InstanceHeader

logger = logging.getLogger(__name__)


class BaseArrClient:
    """Base client for the Radarr/Sonarr v3 APIs.

    This base class provides:
    - HTTP client management with the API key and custom headers
    - Automatic retry with exponential backoff for read-only library GETs
    - Per-client TTL caching for those GETs
    - Single-shot, never retried requests for probes and writes
    - Context manager protocol for resource cleanup

    Subclasses should implement specific API methods using `_get()` for cached
    reads, `_get_uncached()` for fresh reads and `_send()` for anything that
    must not be repeated automatically.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        headers: Iterable[InstanceHeader] = (),
        timeout: float = DEFAULT_TIMEOUT,
        cache_ttl: int = 300,
        max_retries: int = 3,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: The base URL of the arr instance (e.g., https://10.0.1.42:7878)
            api_key: The API key for authentication
            headers: Custom headers sent with every request, duplicates included
            timeout: Request timeout in seconds (default 60)
            cache_ttl: Cache time-to-live in seconds (default 300)
            max_retries: Maximum number of attempts for library GETs (default 3)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.headers = list(headers)
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.max_retries = max_retries

        self._client: httpx.AsyncClient | None = None
        self._cache: TTLCache[str, Any] = TTLCache(maxsize=1000, ttl=cache_ttl)
        self._cache_lock = asyncio.Lock()

    @classmethod
    def from_instance(
        cls, instance: InstanceDescriptor, *, cache_ttl: int = 300, max_retries: int = 3
    ) -> Self:
        """Create a client for a configured instance."""
        return cls(
            instance.url,
            instance.api_key,
            headers=instance.headers,
            timeout=instance.timeout,
            cache_ttl=cache_ttl,
            max_retries=max_retries,
        )

    async def __aenter__(self) -> Self:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=to_transport(self.api_key, self.headers),
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not in context.

        Raises:
            RuntimeError: If called outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    def _make_cache_key(self, endpoint: str, params: dict[str, Any] | None) -> str:
        params_str = str(sorted((params or {}).items()))
        key_data = f"{endpoint}:{params_str}"
        return hashlib.sha256(key_data.encode()).hexdigest()[:16]

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a cached GET request.

        Checks the cache first. If not found, makes the request and caches
        the result.

        Raises:
            httpx.HTTPStatusError: On HTTP errors (after retries exhausted)
        """
        cache_key = self._make_cache_key(endpoint, params)

        async with self._cache_lock:
            if cache_key in self._cache:
                logger.debug("Cache hit for %s", endpoint)
                return self._cache[cache_key]

        logger.debug("Cache miss for %s, fetching from API", endpoint)
        data = await self._get_uncached(endpoint, params)

        async with self._cache_lock:
            self._cache[cache_key] = data

        return data

    async def _get_uncached(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make a GET request without caching, retrying transient failures."""
        return await self._request_with_retry("GET", endpoint, params=params)

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Make an HTTP request with retry logic.

        Retries on connection errors, timeouts, 429 and 5xx. Fails fast on
        401, 404 and other 4xx responses.

        Raises:
            httpx.HTTPStatusError: On non-retryable HTTP errors
            httpx.TransportError: After all retries exhausted
        """

        @retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(
                (httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout)
            ),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async def _do_request() -> Any:
            response = await self.client.request(method, endpoint, params=params, json=json)

            # Don't retry on 401/404 - fail immediately
            if response.status_code in (401, 404):
                response.raise_for_status()

            if response.status_code == 429 or response.status_code >= 500:
                logger.warning("Retryable HTTP error %d for %s", response.status_code, endpoint)
                response.raise_for_status()

            response.raise_for_status()
            return _decode(response)

        return await _do_request()

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Make a single request without retry or caching.

        Used for identity probes and writes, which are never repeated
        automatically.

        Raises:
            httpx.HTTPStatusError: On HTTP errors
            httpx.TransportError: On connection failures and timeouts
        """
        logger.debug("%s %s", method, endpoint)
        response = await self.client.request(method, endpoint, params=params, json=json)
        if response.is_error:
            logger.warning("HTTP error %d for %s %s", response.status_code, method, endpoint)
        response.raise_for_status()
        return _decode(response)

    def _log_retry(self, retry_state: Any) -> None:
        logger.warning(
            "Retry attempt %d after error: %s",
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else "unknown",
        )

    async def invalidate_cache(self, endpoint: str, params: dict[str, Any] | None = None) -> bool:
        """Invalidate a specific cache entry.

        Returns:
            True if entry was found and removed, False otherwise
        """
        cache_key = self._make_cache_key(endpoint, params)
        async with self._cache_lock:
            if cache_key in self._cache:
                del self._cache[cache_key]
                return True
            return False

    async def clear_cache(self) -> int:
        """Clear all cached entries.

        Returns:
            The number of entries that were cleared
        """
        async with self._cache_lock:
            count = len(self._cache)
            self._cache.clear()
            return count

    async def get_system_status(self) -> SystemStatus:
        """Fetch the instance identity, bypassing cache and retries."""
        data = await self._send("GET", "/api/v3/system/status")
        return SystemStatus.model_validate(data)

    async def download_release(self, guid: str, indexer_id: int) -> None:
        """Ask the instance to grab a release found by an indexer search.

        Args:
            guid: The release GUID
            indexer_id: The id of the indexer that returned the release
        """
        await self._send("POST", "/api/v3/release", json={"guid": guid, "indexerId": indexer_id})

    async def _get_releases(self, params: dict[str, Any]) -> list[Release]:
        data = await self._get_uncached("/api/v3/release", params=params)
        return [Release.from_api(item) for item in data]


def _decode(response: httpx.Response) -> Any:
    """Decode a JSON body, treating empty bodies as None."""
    if response.status_code == 204 or not response.content:
        return None
    return response.json()
