"""Field validation for instance forms."""

from __future__ import annotations

from connectarr.errors import LabelEmptyError
from connectarr.models.instance import InstanceDescriptor, InstanceHeader
from connectarr.urls import normalize_url


def has_empty_fields(instance: InstanceDescriptor) -> bool:
    """Whether submission should be disabled because a required field is blank."""
    return not (instance.label.strip() and instance.url.strip() and instance.api_key.strip())


def validate(instance: InstanceDescriptor) -> InstanceDescriptor:
    """Validate an instance form and return a cleaned copy.

    Checks run in order: label, then URL. The returned copy has a stripped
    label and API key, a normalized URL and stripped header names. Headers
    are never dropped or deduplicated. The type is taken as given; it is
    corrected when the URL is committed (see ``TypeDetector``) and checked
    against the instance by the lifecycle probe.

    Raises:
        LabelEmptyError: If the label is blank
        UrlNotValidError: If the URL is malformed or not http(s)
        UrlIsLocalError: If the URL points at a local host
    """
    label = instance.label.strip()
    if not label:
        raise LabelEmptyError()

    url = normalize_url(instance.url)

    return instance.model_copy(
        update={
            "label": label,
            "url": url,
            "api_key": instance.api_key.strip(),
            "headers": [
                InstanceHeader(name=h.name.strip(), value=h.value) for h in instance.headers
            ],
        }
    )
