"""Persistent, ordered registry of configured instances."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ValidationError

from connectarr.models.instance import InstanceDescriptor

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

REGISTRY_VERSION = 1


class RegistryError(Exception):
    """Raised when the registry cannot be written or an instance is unknown."""


class ChangeKind(Enum):
    """What happened to an instance."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SELECTED = "selected"


@dataclass(frozen=True)
class RegistryChange:
    """Notification sent to subscribers after a committed write.

    ``selection_changed`` is set when the selected instance was the one
    affected, or when the selection moved; ``selected_id`` is the selection
    after reconciliation.
    """

    kind: ChangeKind
    instance: InstanceDescriptor
    selection_changed: bool
    selected_id: UUID | None


class RegistryFile(BaseModel):
    """On-disk shape of the registry."""

    version: int = REGISTRY_VERSION
    selected: UUID | None = None
    instances: list[InstanceDescriptor] = Field(default_factory=list)


class InstanceRegistry:
    """Ordered list of instances with a selected one.

    Writes are serialized with a lock and persisted before the in-memory
    snapshot is swapped, so a failed save leaves the registry untouched.
    Reads return the last committed snapshot without locking. Without a
    ``path`` the registry lives in memory only.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._instances: tuple[InstanceDescriptor, ...] = ()
        self._selected_id: UUID | None = None
        self._lock = asyncio.Lock()
        self._subscribers: list[Callable[[RegistryChange], None]] = []
        self._load()

    @property
    def instances(self) -> tuple[InstanceDescriptor, ...]:
        """Snapshot of all instances, in insertion order."""
        return self._instances

    @property
    def selected_id(self) -> UUID | None:
        return self._selected_id

    @property
    def selected(self) -> InstanceDescriptor | None:
        """The currently selected instance, if any."""
        if self._selected_id is None:
            return None
        return self.get(self._selected_id)

    def get(self, instance_id: UUID) -> InstanceDescriptor | None:
        for instance in self._instances:
            if instance.id == instance_id:
                return instance
        return None

    def find(self, key: str) -> InstanceDescriptor | None:
        """Find an instance by id, id prefix or case-insensitive label."""
        key = key.strip()
        for instance in self._instances:
            if str(instance.id) == key or instance.label.lower() == key.lower():
                return instance
        matches = [i for i in self._instances if str(i.id).startswith(key)] if key else []
        return matches[0] if len(matches) == 1 else None

    def subscribe(self, callback: Callable[[RegistryChange], None]) -> None:
        """Register a callback for committed changes."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[RegistryChange], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def insert(self, instance: InstanceDescriptor) -> InstanceDescriptor:
        """Add a new instance and assign its id.

        The first instance added becomes the selected one.
        """
        async with self._lock:
            stored = instance.model_copy(update={"id": uuid4()})
            first = self._selected_id is None
            selected = stored.id if first else self._selected_id
            self._commit((*self._instances, stored), selected)
            logger.info("Added %s instance %r", stored.type.value, stored.label)
            self._notify(RegistryChange(ChangeKind.CREATED, stored, first, selected))
            return stored

    async def update(self, instance: InstanceDescriptor) -> InstanceDescriptor:
        """Replace a stored instance, keeping its position.

        Raises:
            RegistryError: If the instance is not in the registry
        """
        async with self._lock:
            if instance.id is None or self.get(instance.id) is None:
                raise RegistryError(f"Unknown instance: {instance.id}")
            instances = tuple(instance if i.id == instance.id else i for i in self._instances)
            self._commit(instances, self._selected_id)
            logger.info("Updated %s instance %r", instance.type.value, instance.label)
            self._notify(
                RegistryChange(
                    ChangeKind.UPDATED,
                    instance,
                    instance.id == self._selected_id,
                    self._selected_id,
                )
            )
            return instance

    async def delete(self, instance_id: UUID) -> InstanceDescriptor:
        """Remove an instance.

        If it was selected, the selection falls back to the first remaining
        instance, or to nothing.

        Raises:
            RegistryError: If the instance is not in the registry
        """
        async with self._lock:
            removed = self.get(instance_id)
            if removed is None:
                raise RegistryError(f"Unknown instance: {instance_id}")
            remaining = tuple(i for i in self._instances if i.id != instance_id)
            was_selected = instance_id == self._selected_id
            selected = self._selected_id
            if was_selected:
                selected = remaining[0].id if remaining else None
            self._commit(remaining, selected)
            logger.info("Deleted %s instance %r", removed.type.value, removed.label)
            self._notify(RegistryChange(ChangeKind.DELETED, removed, was_selected, selected))
            return removed

    async def select(self, instance_id: UUID) -> InstanceDescriptor:
        """Make an instance the selected one.

        Raises:
            RegistryError: If the instance is not in the registry
        """
        async with self._lock:
            instance = self.get(instance_id)
            if instance is None:
                raise RegistryError(f"Unknown instance: {instance_id}")
            changed = instance_id != self._selected_id
            self._commit(self._instances, instance_id)
            self._notify(RegistryChange(ChangeKind.SELECTED, instance, changed, instance_id))
            return instance

    def _commit(self, instances: tuple[InstanceDescriptor, ...], selected: UUID | None) -> None:
        self._save(instances, selected)
        self._instances = instances
        self._selected_id = selected

    def _notify(self, change: RegistryChange) -> None:
        for callback in list(self._subscribers):
            try:
                callback(change)
            except Exception:
                logger.exception("Registry subscriber %r failed", callback)

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return

        try:
            data = RegistryFile.model_validate_json(self.path.read_bytes())
        except (ValidationError, OSError) as e:
            logger.warning("Failed to load instance registry %s: %s", self.path, e)
            return

        self._instances = tuple(data.instances)
        ids = {i.id for i in self._instances}
        if data.selected in ids:
            self._selected_id = data.selected
        elif self._instances:
            self._selected_id = self._instances[0].id

    def _save(self, instances: tuple[InstanceDescriptor, ...], selected: UUID | None) -> None:
        if self.path is None:
            return

        payload = RegistryFile(selected=selected, instances=list(instances))
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to save instance registry %s: %s", self.path, e)
            raise RegistryError(f"Failed to save instance registry: {e}") from e
