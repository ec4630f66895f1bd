"""Radarr API client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from connectarr.clients.base import BaseArrClient
from connectarr.models.radarr import Movie

if TYPE_CHECKING:
    from connectarr.models.common import Release
    from connectarr.models.radarr import MovieEditorResource

MOVIES_ENDPOINT = "/api/v3/movie"


class RadarrClient(BaseArrClient):
    """Client for interacting with the Radarr API.

    Inherits retry and caching functionality from BaseArrClient. Writes
    to the movie collection drop the cached movie list.

    Example:
        async with RadarrClient.from_instance(instance) as client:
            movies = await client.get_all_movies()
            releases = await client.get_movie_releases(123)
            await client.download_release(releases[0].guid, releases[0].indexer_id)
    """

    async def get_movie(self, movie_id: int) -> Movie:
        """Fetch a specific movie by ID."""
        data = await self._get_uncached(f"{MOVIES_ENDPOINT}/{movie_id}")
        return Movie.model_validate(data)

    async def get_all_movies(self) -> list[Movie]:
        """Fetch all movies in the library."""
        data = await self._get(MOVIES_ENDPOINT)
        return [Movie.model_validate(item) for item in data]

    async def lookup_movies(self, term: str) -> list[Movie]:
        """Search TMDB through Radarr; untracked results have no Radarr id.

        Args:
            term: Search term, or ``tmdb:<id>`` / ``imdb:<id>``
        """
        data = await self._get(f"{MOVIES_ENDPOINT}/lookup", params={"term": term})
        return [Movie.model_validate(item) for item in data]

    async def search_movies(self, term: str) -> list[Movie]:
        """Search for movies in the library by title."""
        movies = await self.get_all_movies()
        term_lower = term.lower()
        return [m for m in movies if term_lower in m.title.lower()]

    async def add_movie(self, movie: Movie) -> Movie:
        """Add a movie to the library.

        Raises:
            ValueError: If the movie is already tracked
        """
        if movie.exists:
            raise ValueError(f"Movie {movie.title!r} is already in the library")
        data = await self._send("POST", MOVIES_ENDPOINT, json=movie.to_api())
        await self.invalidate_cache(MOVIES_ENDPOINT)
        return Movie.model_validate(data)

    async def update_movie(self, movie: Movie, *, move_files: bool = False) -> Movie:
        """Save a tracked movie's mutable fields.

        Args:
            movie: The movie to save; must already be in the library
            move_files: Move existing files when the path changed
        """
        if not movie.exists:
            raise ValueError(f"Movie {movie.title!r} is not in the library")
        data = await self._send(
            "PUT",
            f"{MOVIES_ENDPOINT}/{movie.guid}",
            params={"moveFiles": str(move_files).lower()},
            json=movie.to_api(),
        )
        await self.invalidate_cache(MOVIES_ENDPOINT)
        return Movie.model_validate(data) if data else movie

    async def delete_movie(
        self, movie_id: int, *, delete_files: bool = False, add_exclusion: bool = False
    ) -> None:
        """Remove a movie from the library."""
        await self._send(
            "DELETE",
            f"{MOVIES_ENDPOINT}/{movie_id}",
            params={
                "deleteFiles": str(delete_files).lower(),
                "addImportExclusion": str(add_exclusion).lower(),
            },
        )
        await self.invalidate_cache(MOVIES_ENDPOINT)

    async def edit_movies(self, edit: MovieEditorResource) -> list[Movie]:
        """Apply a batch edit; only the fields set on ``edit`` change."""
        data = await self._send("PUT", f"{MOVIES_ENDPOINT}/editor", json=edit.to_api())
        await self.invalidate_cache(MOVIES_ENDPOINT)
        return [Movie.model_validate(item) for item in data or []]

    async def get_movie_releases(self, movie_id: int) -> list[Release]:
        """Search indexers for releases of a movie."""
        return await self._get_releases({"movieId": movie_id})
