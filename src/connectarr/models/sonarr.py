"""Sonarr-specific models."""

from pydantic import BaseModel, ConfigDict


class Series(BaseModel):
    """A series in the Sonarr library."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    year: int = 0
    monitored: bool = True
