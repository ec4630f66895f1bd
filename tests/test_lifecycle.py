"""Tests for the instance lifecycle client."""

import asyncio
from typing import Any

import pytest

from connectarr.errors import ApiError, BadAppNameError, ErrorSlot, LabelEmptyError
from connectarr.lifecycle import DeleteState, InstanceLifecycleClient
from connectarr.models.common import SystemStatus
from connectarr.models.instance import InstanceDescriptor, InstanceHeader, InstanceType
from connectarr.registry import InstanceRegistry


def _instance(**overrides: Any) -> InstanceDescriptor:
    data: dict[str, Any] = {
        "label": "Synology",
        "url": "https://10.0.1.42:7878/",
        "api_key": "abc123",
    }
    data.update(overrides)
    return InstanceDescriptor.model_validate(data)


class _FakeProbe:
    """Probe reporting a fixed app, optionally blocking until released."""

    def __init__(self, app_name: str = "Radarr", gate: asyncio.Event | None = None) -> None:
        self.app_name = app_name
        self.gate = gate
        self.calls: list[tuple[str, InstanceType]] = []

    async def __call__(
        self, url: str, api_key: str, expected: InstanceType, **_kwargs: Any
    ) -> SystemStatus:
        self.calls.append((url, expected))
        if self.gate is not None:
            await self.gate.wait()
        if self.app_name.lower() != expected.value.lower():
            raise BadAppNameError(self.app_name)
        return SystemStatus(app_name=self.app_name, version="5.2.6")


class TestCreate:
    """Tests for creating instances."""

    @pytest.mark.asyncio
    async def test_stores_validated_instance(self) -> None:
        """Should store a normalized instance with its id and version."""
        registry = InstanceRegistry()
        probe = _FakeProbe()
        form = InstanceLifecycleClient(registry, probe=probe)

        stored = await form.create(_instance())

        assert stored is not None
        assert stored.id is not None
        assert stored.url == "https://10.0.1.42:7878"
        assert stored.version == "5.2.6"
        assert registry.instances == (stored,)
        assert probe.calls == [("https://10.0.1.42:7878", InstanceType.RADARR)]
        assert not form.error
        assert not form.is_loading

    @pytest.mark.asyncio
    async def test_validation_error_skips_probe(self) -> None:
        """Should fail before probing and record the error."""
        registry = InstanceRegistry()
        probe = _FakeProbe()
        form = InstanceLifecycleClient(registry, probe=probe)

        with pytest.raises(LabelEmptyError):
            await form.create(_instance(label=""))

        assert probe.calls == []
        assert registry.instances == ()
        assert form.error.title == "Invalid Label"
        assert not form.is_loading

    @pytest.mark.asyncio
    async def test_wrong_type_is_not_stored(self) -> None:
        """Should refuse an instance reporting a different application."""
        registry = InstanceRegistry()
        form = InstanceLifecycleClient(registry, probe=_FakeProbe(app_name="Sonarr"))

        with pytest.raises(BadAppNameError):
            await form.create(_instance())

        assert registry.instances == ()
        assert form.error.message == "URL returned is a Sonarr instance."

    @pytest.mark.asyncio
    async def test_success_dismisses_previous_error(self) -> None:
        error = ErrorSlot()
        form = InstanceLifecycleClient(InstanceRegistry(), error=error, probe=_FakeProbe())
        with pytest.raises(LabelEmptyError):
            await form.create(_instance(label=""))
        assert error

        await form.create(_instance())

        assert not error

    @pytest.mark.asyncio
    async def test_concurrent_submission_is_ignored(self) -> None:
        """Should ignore a second submission while one is in flight."""
        gate = asyncio.Event()
        registry = InstanceRegistry()
        form = InstanceLifecycleClient(registry, probe=_FakeProbe(gate=gate))

        first = asyncio.create_task(form.create(_instance()))
        await asyncio.sleep(0)
        assert form.is_loading

        assert await form.create(_instance(label="Other")) is None

        gate.set()
        stored = await first
        assert stored is not None
        assert [i.label for i in registry.instances] == ["Synology"]
        assert not form.is_loading

    @pytest.mark.asyncio
    async def test_registry_failure_becomes_api_error(
        self, tmp_path: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should report a failed save as an ApiError."""
        registry = InstanceRegistry(tmp_path / "instances.json")
        form = InstanceLifecycleClient(registry, probe=_FakeProbe())

        def fail(*_args: object) -> None:
            raise OSError("read-only file system")

        monkeypatch.setattr("connectarr.registry.os.replace", fail)

        with pytest.raises(ApiError):
            await form.create(_instance())

        assert registry.instances == ()
        assert form.error

    @pytest.mark.asyncio
    async def test_non_ascii_header_becomes_api_error(self) -> None:
        """Should report a header httpx cannot encode as an ApiError and store nothing."""
        registry = InstanceRegistry()
        form = InstanceLifecycleClient(registry)
        instance = _instance(headers=[InstanceHeader(name="X-User", value="José")])

        with pytest.raises(ApiError):
            await form.create(instance)

        assert isinstance(form.error.current, ApiError)
        assert form.error.title == "Invalid Header"
        assert registry.instances == ()
        assert not form.is_loading


class TestUpdate:
    """Tests for updating instances."""

    @pytest.mark.asyncio
    async def test_probes_again_and_saves(self) -> None:
        registry = InstanceRegistry()
        probe = _FakeProbe(app_name="Sonarr")
        stored = await registry.insert(_instance(type=InstanceType.SONARR))
        form = InstanceLifecycleClient(registry, probe=probe)

        updated = await form.update(
            stored.id, stored.model_copy(update={"label": "TV", "url": "https://tv.example.com"})
        )

        assert updated is not None
        assert updated.id == stored.id
        assert registry.instances[0].label == "TV"
        assert probe.calls == [("https://tv.example.com", InstanceType.SONARR)]

    @pytest.mark.asyncio
    async def test_failed_probe_keeps_stored_instance(self) -> None:
        registry = InstanceRegistry()
        stored = await registry.insert(_instance())
        form = InstanceLifecycleClient(registry, probe=_FakeProbe(app_name="Sonarr"))

        with pytest.raises(BadAppNameError):
            await form.update(stored.id, stored.model_copy(update={"label": "Changed"}))

        assert registry.instances == (stored,)


class TestDelete:
    """Tests for two-phase deletion."""

    @pytest.mark.asyncio
    async def test_requires_confirmation(self) -> None:
        """Should refuse to delete until the request is confirmed."""
        registry = InstanceRegistry()
        stored = await registry.insert(_instance())
        form = InstanceLifecycleClient(registry)

        request = form.request_delete(stored.id)
        assert request.state is DeleteState.PENDING_CONFIRMATION

        with pytest.raises(ValueError):
            await form.delete(request)
        assert registry.instances == (stored,)

        request.confirm()
        assert await form.delete(request) is True
        assert request.state is DeleteState.EXECUTED
        assert registry.instances == ()

    @pytest.mark.asyncio
    async def test_cancelled_request_cannot_be_confirmed(self) -> None:
        registry = InstanceRegistry()
        stored = await registry.insert(_instance())
        request = InstanceLifecycleClient(registry).request_delete(stored.id)

        request.cancel()

        assert request.state is DeleteState.CANCELLED
        with pytest.raises(ValueError):
            request.confirm()

    def test_unknown_instance(self) -> None:
        form = InstanceLifecycleClient(InstanceRegistry())

        with pytest.raises(KeyError):
            form.request_delete(_instance().id)  # type: ignore[arg-type]
