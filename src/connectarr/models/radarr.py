"""Radarr-specific models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Offset applied to TMDB ids of movies Radarr does not track yet, so they
# never collide with Radarr's own ids.
UNTRACKED_ID_OFFSET = 100_000


class MovieStatus(str, Enum):
    """Release status of a movie, also used for minimum availability."""

    TBA = "tba"
    ANNOUNCED = "announced"
    IN_CINEMAS = "inCinemas"
    RELEASED = "released"
    DELETED = "deleted"

    @property
    def label(self) -> str:
        return {
            MovieStatus.TBA: "TBA",
            MovieStatus.ANNOUNCED: "Announced",
            MovieStatus.IN_CINEMAS: "In Cinemas",
            MovieStatus.RELEASED: "Released",
            MovieStatus.DELETED: "Deleted",
        }[self]


class MovieImage(BaseModel):
    """Artwork reference for a movie."""

    cover_type: str = Field(alias="coverType")
    remote_url: str | None = Field(default=None, alias="remoteUrl")
    url: str | None = None


class MovieRating(BaseModel):
    votes: int = 0
    value: float = 0.0


class MovieRatings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    imdb: MovieRating | None = None
    tmdb: MovieRating | None = None
    metacritic: MovieRating | None = None
    rotten_tomatoes: MovieRating | None = Field(default=None, alias="rottenTomatoes")


class Movie(BaseModel):
    """A movie from the Radarr library or a lookup result.

    Radarr only assigns an ``id`` once a movie is added; it is exposed here
    as ``guid``. Unknown fields are kept so a movie can be sent back to
    Radarr unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    guid: int | None = Field(default=None, alias="id")
    tmdb_id: int = Field(default=0, alias="tmdbId")
    imdb_id: str | None = Field(default=None, alias="imdbId")

    title: str
    sort_title: str | None = Field(default=None, alias="sortTitle")
    studio: str | None = None
    year: int = 0
    runtime: int = 0
    overview: str | None = None
    certification: str | None = None
    genres: list[str] = Field(default_factory=list)
    ratings: MovieRatings | None = None
    images: list[MovieImage] = Field(default_factory=list)

    status: MovieStatus = MovieStatus.TBA
    minimum_availability: MovieStatus = Field(
        default=MovieStatus.RELEASED, alias="minimumAvailability"
    )
    monitored: bool = False
    quality_profile_id: int = Field(default=0, alias="qualityProfileId")
    path: str | None = None
    root_folder_path: str | None = Field(default=None, alias="rootFolderPath")
    has_file: bool | None = Field(default=None, alias="hasFile")
    size_on_disk: int | None = Field(default=None, alias="sizeOnDisk")

    added: datetime | None = None
    in_cinemas: datetime | None = Field(default=None, alias="inCinemas")
    physical_release: datetime | None = Field(default=None, alias="physicalRelease")
    digital_release: datetime | None = Field(default=None, alias="digitalRelease")

    @property
    def id(self) -> int:
        """Stable identity: Radarr's id when tracked, else an offset TMDB id."""
        if self.guid is not None:
            return self.guid
        return self.tmdb_id + UNTRACKED_ID_OFFSET

    @property
    def exists(self) -> bool:
        """Whether Radarr tracks this movie."""
        return self.guid is not None

    @property
    def is_downloaded(self) -> bool:
        return bool(self.has_file)

    @property
    def is_released(self) -> bool:
        return self.status is MovieStatus.RELEASED

    @property
    def sort_year(self) -> int:
        return 2100 if self.year == 0 else self.year

    def to_api(self) -> dict:
        """Serialize back into the Radarr resource shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MovieEditorResource(BaseModel):
    """Batch edit of several movies; only fields that are set are applied."""

    model_config = ConfigDict(populate_by_name=True)

    movie_ids: list[int] = Field(alias="movieIds")
    monitored: bool | None = None
    quality_profile_id: int | None = Field(default=None, alias="qualityProfileId")
    minimum_availability: MovieStatus | None = Field(
        default=None, alias="minimumAvailability"
    )
    root_folder_path: str | None = Field(default=None, alias="rootFolderPath")
    move_files: bool | None = Field(default=None, alias="moveFiles")

    def to_api(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
