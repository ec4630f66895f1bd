"""Custom header helpers: Basic-Auth synthesis and pasted-header import."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING

from connectarr.models.instance import InstanceHeader

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"


def encode_basic_auth(username: str, password: str) -> InstanceHeader:
    """Build an ``Authorization: Basic ...`` header from credentials.

    Empty usernames or passwords are accepted as-is.
    """
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return InstanceHeader(name="Authorization", value=f"Basic {token}")


def decode_basic_auth(header: InstanceHeader) -> tuple[str, str] | None:
    """Recover ``(username, password)`` from a Basic ``Authorization`` header.

    Returns:
        The credentials, or None if the header is not a decodable Basic header
    """
    if header.name.lower() != "authorization":
        return None
    scheme, _, token = header.value.partition(" ")
    if scheme.lower() != "basic" or not token:
        return None
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


def parse_pasted(text: str) -> list[InstanceHeader]:
    """Parse pasted ``Name: value`` lines into headers.

    Lines without a colon or with an empty name are dropped silently; only
    the first colon separates name from value.
    """
    headers: list[InstanceHeader] = []
    for line in text.splitlines():
        name, sep, value = line.partition(":")
        name = name.strip()
        if not sep or not name or any(c.isspace() for c in name):
            if line.strip():
                logger.debug("Dropping unparseable header line: %r", line)
            continue
        headers.append(InstanceHeader(name=name, value=value.strip()))
    return headers


def to_transport(api_key: str, headers: Iterable[InstanceHeader]) -> list[tuple[str, str]]:
    """Build the header list sent with every request.

    The API key goes first, followed by every custom header in order,
    duplicates included. Headers with a blank name are skipped.
    """
    result = [(API_KEY_HEADER, api_key)]
    for header in headers:
        name = header.name.strip()
        if not name:
            continue
        result.append((name, header.value))
    return result
