"""Create, update and delete instances against the registry."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from connectarr.errors import ApiError, ErrorSlot, InstanceError
from connectarr.registry import RegistryError
from connectarr.urls import detect_type
from connectarr.validation import validate

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from uuid import UUID

    from connectarr.models.instance import InstanceDescriptor
    from connectarr.registry import InstanceRegistry
    from connectarr.urls import Prober

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class DeleteState(Enum):
    """Phases of an instance deletion."""

    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    EXECUTED = "executed"
    CANCELLED = "cancelled"


class DeleteRequest:
    """A deletion that only runs after it has been explicitly confirmed."""

    def __init__(self, instance: InstanceDescriptor) -> None:
        self.instance = instance
        self.state = DeleteState.PENDING_CONFIRMATION

    def confirm(self) -> None:
        """Confirm the deletion.

        Raises:
            ValueError: If the request is no longer pending
        """
        if self.state is not DeleteState.PENDING_CONFIRMATION:
            raise ValueError(f"Cannot confirm a {self.state.value} delete request")
        self.state = DeleteState.CONFIRMED

    def cancel(self) -> None:
        if self.state is DeleteState.PENDING_CONFIRMATION:
            self.state = DeleteState.CANCELLED


class InstanceLifecycleClient:
    """Drives one instance form: create, update and delete.

    Only one operation runs at a time; a submission made while another is in
    flight is ignored and ``None`` is returned. Failures are put in
    ``error`` and re-raised.

    Example:
        form = InstanceLifecycleClient(registry)
        instance = await form.create(InstanceDescriptor(label="Synology", ...))

        request = form.request_delete(instance.id)
        request.confirm()
        await form.delete(request)
    """

    def __init__(
        self,
        registry: InstanceRegistry,
        *,
        error: ErrorSlot | None = None,
        probe: Prober = detect_type,
    ) -> None:
        self.registry = registry
        self.error = error if error is not None else ErrorSlot()
        self._probe = probe
        self._loading = False

    @property
    def is_loading(self) -> bool:
        """Whether an operation is in flight."""
        return self._loading

    async def create(self, instance: InstanceDescriptor) -> InstanceDescriptor | None:
        """Validate, probe and store a new instance.

        Returns:
            The stored instance with its id, or None if the call was ignored

        Raises:
            InstanceError: On validation, type or API failures
        """
        if self._loading:
            logger.debug("Ignoring create of %r, another operation is in flight", instance.label)
            return None
        self._loading = True
        try:
            checked = await self._check(instance)
            stored = await self._write(self.registry.insert, checked)
        except InstanceError as e:
            self.error.set(e)
            raise
        finally:
            self._loading = False
        self.error.dismiss()
        return stored

    async def update(
        self, instance_id: UUID, instance: InstanceDescriptor
    ) -> InstanceDescriptor | None:
        """Validate, probe and save changes to an existing instance.

        Returns:
            The stored instance, or None if the call was ignored

        Raises:
            InstanceError: On validation, type or API failures
        """
        if self._loading:
            logger.debug("Ignoring update of %s, another operation is in flight", instance_id)
            return None
        self._loading = True
        try:
            checked = await self._check(instance.model_copy(update={"id": instance_id}))
            stored = await self._write(self.registry.update, checked)
        except InstanceError as e:
            self.error.set(e)
            raise
        finally:
            self._loading = False
        self.error.dismiss()
        return stored

    def request_delete(self, instance_id: UUID) -> DeleteRequest:
        """Start a deletion; it must be confirmed before ``delete`` runs it.

        Raises:
            KeyError: If the instance is not in the registry
        """
        instance = self.registry.get(instance_id)
        if instance is None:
            raise KeyError(instance_id)
        return DeleteRequest(instance)

    async def delete(self, request: DeleteRequest) -> bool:
        """Execute a confirmed deletion.

        Returns:
            True once deleted, False if the call was ignored

        Raises:
            ValueError: If the request has not been confirmed
            ApiError: If the registry could not be written
        """
        if request.state is not DeleteState.CONFIRMED:
            raise ValueError(f"Delete request is {request.state.value}, not confirmed")
        if self._loading:
            logger.debug(
                "Ignoring delete of %r, another operation is in flight", request.instance.label
            )
            return False
        self._loading = True
        try:
            await self._write(self.registry.delete, request.instance.id)
        except InstanceError as e:
            self.error.set(e)
            raise
        finally:
            self._loading = False
        request.state = DeleteState.EXECUTED
        self.error.dismiss()
        return True

    async def _check(self, instance: InstanceDescriptor) -> InstanceDescriptor:
        checked = validate(instance)
        status = await self._probe(
            checked.url,
            checked.api_key,
            checked.type,
            timeout=checked.timeout,
            headers=checked.headers,
        )
        return checked.model_copy(update={"version": status.version})

    @staticmethod
    async def _write(operation: Callable[[T], Awaitable[R]], argument: T) -> R:
        try:
            return await operation(argument)
        except RegistryError as e:
            raise ApiError(e) from e
