"""Release display values and the grab action."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from connectarr.errors import ApiError, ErrorSlot

if TYPE_CHECKING:
    from connectarr.clients.base import BaseArrClient
    from connectarr.models.common import Release

logger = logging.getLogger(__name__)

_BYTE_UNITS = ("KB", "MB", "GB", "TB", "PB")


def format_bytes(size: int) -> str:
    """Format a byte count with decimal units, e.g. ``1.5 GB``."""
    if size < 1000:
        return "1 byte" if size == 1 else f"{max(size, 0)} bytes"
    value = float(size)
    unit = _BYTE_UNITS[0]
    for unit in _BYTE_UNITS:
        value /= 1000
        if value < 1000:
            break
    return f"{value:.1f}".rstrip("0").rstrip(".") + f" {unit}"


def quality_label(release: Release) -> str:
    return release.quality.name


def size_label(release: Release) -> str:
    return format_bytes(release.size)


def age_label(release: Release) -> str:
    """Age of the release in the largest sensible unit."""
    minutes = int(release.age_minutes) if release.age_minutes else release.age * 1440
    if minutes <= 1:
        return "1 minute"
    if minutes < 120:
        return f"{minutes} minutes"
    if minutes < 2880:
        return f"{minutes // 60} hours"
    days = minutes // 1440
    return f"{days} days"


def language_label(release: Release) -> str | None:
    names = [lang.name for lang in release.languages if lang.name]
    return ", ".join(names) if names else None


def indexer_label(release: Release) -> str:
    return release.indexer.removesuffix(" (Prowlarr)")


def peers_label(release: Release) -> str | None:
    """Seeders and leechers; usenet releases have no peers."""
    if not release.is_torrent:
        return None
    return f"S: {release.seeders or 0}  L: {release.leechers or 0}"


def clean_indexer_flags(release: Release) -> list[str]:
    return [flag.removeprefix("G_") for flag in release.indexer_flags]


def rejection_summary(release: Release) -> str | None:
    """One line describing why the release was rejected, if it was."""
    if not release.rejections:
        return None
    first = release.rejections[0]
    extra = len(release.rejections) - 1
    return f"{first} (+{extra} more)" if extra else first


class ReleaseEvaluator:
    """Grabs releases for one library context.

    ``is_working`` stays set while a grab is in flight so callers can block
    another one; a concurrent call is ignored. The outcome lands in
    ``error``: failures set it, success clears it.
    """

    def __init__(self, client: BaseArrClient, *, error: ErrorSlot | None = None) -> None:
        self.client = client
        self.error = error if error is not None else ErrorSlot()
        self._working = False

    @property
    def is_working(self) -> bool:
        return self._working

    async def acquire(self, release: Release) -> bool:
        """Ask the instance to download ``release``.

        Returns:
            True if the instance accepted the grab, False on failure or when
            another grab is in flight
        """
        if self._working:
            logger.debug("Ignoring grab of %s, another grab is in flight", release.guid)
            return False
        self._working = True
        try:
            await self.client.download_release(release.guid, release.indexer_id)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Grab of %r failed: %s", release.title, e)
            self.error.set(ApiError(e))
            return False
        finally:
            self._working = False

        logger.info("Grabbed %r from %s", release.title, indexer_label(release))
        self.error.dismiss()
        return True
