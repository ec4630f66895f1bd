"""Sonarr API client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from connectarr.clients.base import BaseArrClient
from connectarr.models.sonarr import Series

if TYPE_CHECKING:
    from connectarr.models.common import Release


class SonarrClient(BaseArrClient):
    """Client for interacting with the Sonarr API.

    Inherits retry and caching functionality from BaseArrClient.

    Example:
        async with SonarrClient.from_instance(instance) as client:
            series = await client.get_all_series()
            releases = await client.get_season_releases(456, 2)
    """

    async def get_all_series(self) -> list[Series]:
        """Fetch all series in the library."""
        data = await self._get("/api/v3/series")
        return [Series.model_validate(item) for item in data]

    async def get_series(self, series_id: int) -> Series:
        """Fetch a specific series by ID."""
        data = await self._get_uncached(f"/api/v3/series/{series_id}")
        return Series.model_validate(data)

    async def get_season_releases(self, series_id: int, season_number: int) -> list[Release]:
        """Search indexers for full-season releases."""
        return await self._get_releases({"seriesId": series_id, "seasonNumber": season_number})

    async def get_episode_releases(self, episode_id: int) -> list[Release]:
        """Search indexers for releases of a single episode."""
        return await self._get_releases({"episodeId": episode_id})
