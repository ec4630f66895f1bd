"""Semantic state and display labels for library movies."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from connectarr.models.radarr import MovieStatus

if TYPE_CHECKING:
    from connectarr.models.radarr import Movie


class MovieState(Enum):
    """What a movie means to the user, derived from its raw fields."""

    DOWNLOADED = "Downloaded"
    WAITING = "Waiting"
    MISSING = "Missing"
    UNWANTED = "Unwanted"


class ReleaseType(Enum):
    """A movie's release windows, in the order they are matched."""

    IN_CINEMAS = "In Cinemas"
    DIGITAL = "Digital Release"
    PHYSICAL = "Physical Release"


def is_waiting(movie: Movie) -> bool:
    """Whether a movie has not yet cleared its availability gate.

    Announced and TBA movies are always waiting; movies in cinemas wait only
    when the minimum availability is "released".
    """
    if movie.status in (MovieStatus.TBA, MovieStatus.ANNOUNCED):
        return True
    if movie.status is MovieStatus.IN_CINEMAS:
        return movie.minimum_availability is MovieStatus.RELEASED
    return False


def derive_state(movie: Movie) -> MovieState:
    """Derive the user-facing state of a movie."""
    if movie.is_downloaded:
        return MovieState.DOWNLOADED
    if is_waiting(movie):
        return MovieState.WAITING
    if movie.monitored and movie.is_released:
        return MovieState.MISSING
    return MovieState.UNWANTED


def _local_day(value: date | datetime) -> date:
    if isinstance(value, datetime):
        # naive datetimes are taken as local time
        return value.astimezone().date() if value.tzinfo else value.date()
    return value


def release_type(movie: Movie, for_date: date | datetime) -> ReleaseType | None:
    """Match a calendar day against the movie's release windows.

    Days are compared in the local calendar; cinema wins over digital, and
    digital over physical.
    """
    day = _local_day(for_date)
    windows = (
        (movie.in_cinemas, ReleaseType.IN_CINEMAS),
        (movie.digital_release, ReleaseType.DIGITAL),
        (movie.physical_release, ReleaseType.PHYSICAL),
    )
    for window, kind in windows:
        if window is not None and _local_day(window) == day:
            return kind
    return None


def year_label(movie: Movie) -> str:
    return str(movie.year) if movie.year > 0 else "TBA"


def format_runtime(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"


def runtime_label(movie: Movie) -> str | None:
    if movie.runtime <= 0:
        return None
    return format_runtime(movie.runtime)


def certification_label(movie: Movie) -> str:
    rating = movie.certification
    if not rating or rating == "0":
        return "Unrated"
    return rating


def genre_label(movie: Movie) -> str:
    """The first three genres, with "Science Fiction" shortened."""
    genres = [g.replace("Science Fiction", "Sci-Fi") for g in movie.genres[:3]]
    return ", ".join(genres)


def remote_poster(movie: Movie) -> str | None:
    for image in movie.images:
        if image.cover_type == "poster":
            return image.remote_url
    return None


def state_label(movie: Movie) -> str:
    return derive_state(movie).value
