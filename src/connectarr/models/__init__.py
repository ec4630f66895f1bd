"""Pydantic models for instances and API resources."""

from connectarr.models.common import Language, Quality, Release, SystemStatus
from connectarr.models.instance import (
    DEFAULT_TIMEOUT,
    InstanceDescriptor,
    InstanceHeader,
    InstanceType,
)
from connectarr.models.radarr import Movie, MovieEditorResource, MovieImage, MovieStatus
from connectarr.models.sonarr import Series

__all__ = [
    "DEFAULT_TIMEOUT",
    "InstanceDescriptor",
    "InstanceHeader",
    "InstanceType",
    "Language",
    "Movie",
    "MovieEditorResource",
    "MovieImage",
    "MovieStatus",
    "Quality",
    "Release",
    "Series",
    "SystemStatus",
]
