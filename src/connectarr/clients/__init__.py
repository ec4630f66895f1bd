"""API clients for Radarr and Sonarr."""

from __future__ import annotations

from typing import Any

from connectarr.clients.base import BaseArrClient
from connectarr.clients.radarr import RadarrClient
from connectarr.clients.sonarr import SonarrClient
from connectarr.models.instance import InstanceDescriptor, InstanceType

__all__ = ["BaseArrClient", "RadarrClient", "SonarrClient", "client_for"]


def client_for(instance: InstanceDescriptor, **kwargs: Any) -> RadarrClient | SonarrClient:
    """Create the client class matching an instance's type."""
    if instance.type is InstanceType.RADARR:
        return RadarrClient.from_instance(instance, **kwargs)
    return SonarrClient.from_instance(instance, **kwargs)
