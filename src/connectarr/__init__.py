"""connectarr - Register, validate and drive Radarr/Sonarr instances.

A Python library for keeping a list of Radarr ("movie manager") and Sonarr
("series manager") instances, checking that each URL and API key really
belongs to the selected kind of instance, and working with the selected
instance's library and indexer releases.

Quick Start
-----------
Register an instance::

    from connectarr import InstanceDescriptor, InstanceLifecycleClient, InstanceRegistry

    registry = InstanceRegistry(path)
    form = InstanceLifecycleClient(registry)
    instance = await form.create(
        InstanceDescriptor(label="Synology", url="https://10.0.1.42:7878", api_key="...")
    )

Derive movie states::

    from connectarr import RadarrClient, derive_state

    async with RadarrClient.from_instance(instance) as client:
        for movie in await client.get_all_movies():
            print(movie.title, derive_state(movie).value)

Grab a release::

    from connectarr import ReleaseEvaluator

    async with RadarrClient.from_instance(instance) as client:
        releases = await client.get_movie_releases(movie.id)
        evaluator = ReleaseEvaluator(client)
        if not await evaluator.acquire(releases[0]):
            print(evaluator.error.title, evaluator.error.message)

CLI Usage
---------
::

    connectarr instance add --label Synology --url https://10.0.1.42:7878 --api-key KEY
    connectarr movie list --state missing
    connectarr movie releases 42

Classes
-------
InstanceLifecycleClient
    Create, update and delete instances from a form.
InstanceRegistry
    Persistent ordered list of instances and the current selection.
ReleaseEvaluator
    Grab releases with busy-state and error tracking.
RadarrClient
    Low-level async client for the Radarr API.
SonarrClient
    Low-level async client for the Sonarr API.
"""

from connectarr.clients.radarr import RadarrClient
from connectarr.clients.sonarr import SonarrClient
from connectarr.errors import (
    ApiError,
    BadAppNameError,
    ErrorSlot,
    InstanceError,
    LabelEmptyError,
    UrlIsLocalError,
    UrlNotValidError,
)
from connectarr.headers import encode_basic_auth, parse_pasted
from connectarr.library import MovieState, ReleaseType, derive_state, release_type
from connectarr.lifecycle import DeleteRequest, DeleteState, InstanceLifecycleClient
from connectarr.models.instance import InstanceDescriptor, InstanceHeader, InstanceType
from connectarr.registry import InstanceRegistry, RegistryChange
from connectarr.releases import ReleaseEvaluator
from connectarr.urls import TypeDetector, detect_type, normalize_url
from connectarr.validation import has_empty_fields, validate

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "BadAppNameError",
    "DeleteRequest",
    "DeleteState",
    "ErrorSlot",
    "InstanceDescriptor",
    "InstanceError",
    "InstanceHeader",
    "InstanceLifecycleClient",
    "InstanceRegistry",
    "InstanceType",
    "LabelEmptyError",
    "MovieState",
    "RadarrClient",
    "RegistryChange",
    "ReleaseEvaluator",
    "ReleaseType",
    "SonarrClient",
    "TypeDetector",
    "UrlIsLocalError",
    "UrlNotValidError",
    "__version__",
    "derive_state",
    "detect_type",
    "encode_basic_auth",
    "has_empty_fields",
    "normalize_url",
    "parse_pasted",
    "release_type",
    "validate",
]
