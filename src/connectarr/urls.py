"""URL normalization and instance type detection."""

from __future__ import annotations

import asyncio
import contextlib
import ipaddress
import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from connectarr.clients.base import BaseArrClient
from connectarr.errors import ApiError, BadAppNameError, UrlIsLocalError, UrlNotValidError
from connectarr.models.instance import DEFAULT_TIMEOUT, InstanceType

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from connectarr.models.common import SystemStatus
    from connectarr.models.instance import InstanceDescriptor, InstanceHeader

    Prober = Callable[..., Awaitable[SystemStatus]]

logger = logging.getLogger(__name__)

LOCAL_HOSTNAMES = frozenset({"localhost", "localhost.localdomain", "ip6-localhost"})

_PORT_TYPES = {t.default_port: t for t in InstanceType}


def is_local_host(host: str) -> bool:
    """Check whether a host name or address only resolves on this machine."""
    host = host.strip("[]").rstrip(".").lower()
    if host in LOCAL_HOSTNAMES or host.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_unspecified


def normalize_url(raw: str) -> str:
    """Clean up a user-supplied base URL.

    Surrounding whitespace and trailing slashes are removed; a sub-path used
    behind a reverse proxy is kept.

    Raises:
        UrlNotValidError: If the URL is not absolute http(s) with a host
        UrlIsLocalError: If the host is loopback or local-only
    """
    candidate = raw.strip()
    try:
        url = httpx.URL(candidate)
    except (httpx.InvalidURL, TypeError) as e:
        raise UrlNotValidError(candidate) from e

    if url.scheme not in ("http", "https") or not url.host:
        raise UrlNotValidError(candidate)
    if is_local_host(url.host):
        raise UrlIsLocalError(candidate)

    return str(url).rstrip("/")


def infer_type(url: str) -> InstanceType | None:
    """Guess the instance type from a well-known default port."""
    try:
        port = httpx.URL(url).port
    except httpx.InvalidURL:
        return None
    return _PORT_TYPES.get(port) if port else None


async def detect_type(
    url: str,
    api_key: str,
    expected: InstanceType,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    headers: Iterable[InstanceHeader] = (),
) -> SystemStatus:
    """Probe an instance and make sure it is the expected application.

    Args:
        url: A normalized base URL
        api_key: The API key to authenticate with
        expected: The type the user selected
        timeout: Request timeout in seconds
        headers: Custom headers to send along

    Returns:
        The instance's system status

    Raises:
        BadAppNameError: If the instance reports a different application
        ApiError: On transport, authentication or server failures
    """
    # Non-ASCII headers are rejected while the client is built
    try:
        async with BaseArrClient(url, api_key, headers=headers, timeout=timeout) as client:
            status = await client.get_system_status()
    except (httpx.HTTPError, ValidationError, ValueError) as e:
        logger.info("Probe of %s failed: %s", url, e)
        raise ApiError(e) from e

    if status.app_name.lower() != expected.value.lower():
        logger.info("%s reports %s, expected %s", url, status.app_name, expected.value)
        raise BadAppNameError(status.app_name)

    logger.debug("%s is %s %s", url, status.app_name, status.version or "")
    return status


class TypeDetector:
    """Re-checks an instance's type whenever its URL field is committed.

    Each commit corrects the type in place from the URL's port, then
    schedules a debounced identity probe. A newer commit cancels a pending
    probe, so only the last URL is ever reported.
    """

    def __init__(self, *, debounce: float = 0.5, probe: Prober = detect_type) -> None:
        self.debounce = debounce
        self._probe = probe
        self._task: asyncio.Task[SystemStatus] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def commit(self, instance: InstanceDescriptor) -> InstanceType | None:
        """Handle a URL commit on ``instance``.

        Must be called from a running event loop.

        Returns:
            The (possibly corrected) type, or None if the URL is not usable yet
        """
        self.cancel()
        try:
            url = normalize_url(instance.url)
        except (UrlNotValidError, UrlIsLocalError):
            return None

        guessed = infer_type(url)
        if guessed is not None and guessed is not instance.type:
            logger.debug("Switching instance type to %s based on %s", guessed.value, url)
            instance.type = guessed

        if instance.api_key.strip():
            self._task = asyncio.create_task(
                self._run(url, instance.api_key.strip(), instance.type, instance)
            )
        return instance.type

    async def _run(
        self, url: str, api_key: str, expected: InstanceType, instance: InstanceDescriptor
    ) -> SystemStatus:
        await asyncio.sleep(self.debounce)
        return await self._probe(
            url, api_key, expected, timeout=instance.timeout, headers=instance.headers
        )

    def cancel(self) -> None:
        """Drop the pending probe, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> SystemStatus | None:
        """Wait for the latest probe.

        Returns:
            The system status, or None if nothing was scheduled

        Raises:
            BadAppNameError: If the instance reports a different application
            ApiError: If the probe failed
        """
        task = self._task
        if task is None:
            return None
        with contextlib.suppress(asyncio.CancelledError):
            return await task
        return None
