"""Models describing a configured Radarr/Sonarr instance."""

from __future__ import annotations

from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT = 60


class InstanceType(str, Enum):
    """The two supported service flavors."""

    RADARR = "Radarr"
    SONARR = "Sonarr"

    @property
    def default_port(self) -> int:
        return 7878 if self is InstanceType.RADARR else 8989


class InstanceHeader(BaseModel):
    """A custom HTTP header sent with every request to an instance."""

    name: str = ""
    value: str = ""


class InstanceDescriptor(BaseModel):
    """Connection details for one Radarr or Sonarr instance.

    ``id`` stays ``None`` until the instance registry accepts the instance.
    Headers keep their order and duplicates are sent as-is.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: UUID | None = None
    label: str = ""
    type: InstanceType = InstanceType.RADARR
    url: str = ""
    api_key: str = ""
    timeout: Literal[10, 30, 60] = DEFAULT_TIMEOUT
    headers: list[InstanceHeader] = Field(default_factory=list)
    version: str | None = None
