"""Tests for CLI commands."""

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest
import respx
from httpx import Response
from typer.testing import CliRunner

from connectarr.cli import app, format_movie_simple, movie_to_dict
from connectarr.config import Config, RegistryConfig
from connectarr.headers import encode_basic_auth
from connectarr.models.instance import InstanceDescriptor, InstanceType
from connectarr.models.radarr import Movie
from connectarr.registry import InstanceRegistry

runner = CliRunner()

RADARR_URL = "https://10.0.1.42:7878"
MOVIES = [
    {
        "id": 1,
        "tmdbId": 603,
        "title": "The Matrix",
        "year": 1999,
        "status": "released",
        "monitored": True,
        "hasFile": True,
    },
    {
        "id": 2,
        "tmdbId": 438631,
        "title": "Dune",
        "year": 2021,
        "status": "released",
        "monitored": True,
        "hasFile": False,
    },
]
RELEASE = {
    "guid": "abc",
    "indexerId": 3,
    "title": "Dune.2021.2160p",
    "indexer": "NZBgeek (Prowlarr)",
    "size": 1_500_000_000,
    "quality": {"quality": {"id": 19, "name": "WEBDL-2160p"}},
    "protocol": "usenet",
    "ageMinutes": 45,
}


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(registry=RegistryConfig(path=tmp_path / "instances.json"))


def _seed(config: Config, *instances: InstanceDescriptor) -> list[InstanceDescriptor]:
    """Store instances directly in the registry file, bypassing the probe."""
    registry = InstanceRegistry(config.registry.path)

    async def _insert() -> list[InstanceDescriptor]:
        return [await registry.insert(instance) for instance in instances]

    return asyncio.run(_insert())


def _radarr(label: str = "Movies") -> InstanceDescriptor:
    return InstanceDescriptor(label=label, url=RADARR_URL, api_key="key")


def _sonarr(label: str = "TV") -> InstanceDescriptor:
    return InstanceDescriptor(
        label=label, url="https://10.0.1.42:8989", api_key="key", type=InstanceType.SONARR
    )


class TestOutputFormatters:
    """Tests for output formatting functions."""

    def test_format_movie_simple(self) -> None:
        movie = Movie.model_validate(MOVIES[1])

        assert format_movie_simple(movie) == "Dune (2021) [2]: Missing"

    def test_movie_to_dict(self) -> None:
        data = movie_to_dict(Movie.model_validate(MOVIES[0]))

        assert data["state"] == "Downloaded"
        assert data["status"] == "released"
        json.dumps(data)


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "connectarr version" in result.output


class TestInstanceAdd:
    """Tests for 'connectarr instance add'."""

    @respx.mock
    def test_add_probes_and_stores(self, config: Config) -> None:
        """Should probe the instance and store it as selected."""
        route = respx.get(f"{RADARR_URL}/api/v3/system/status").mock(
            return_value=Response(200, json={"appName": "Radarr", "version": "5.2.6"})
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "add",
                    "--label",
                    "Synology",
                    "--url",
                    f"{RADARR_URL}/",
                    "--api-key",
                    "key",
                    "--basic-auth",
                    "user:pass",
                ],
            )

        assert result.exit_code == 0, result.output
        assert "Added Radarr instance" in result.output
        assert route.calls.last.request.headers["Authorization"] == "Basic dXNlcjpwYXNz"

        registry = InstanceRegistry(config.registry.path)
        assert registry.selected is not None
        assert registry.selected.url == RADARR_URL
        assert registry.selected.version == "5.2.6"

    @respx.mock
    def test_type_inferred_from_port(self, config: Config) -> None:
        respx.get("https://10.0.1.42:8989/api/v3/system/status").mock(
            return_value=Response(200, json={"appName": "Sonarr"})
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "add",
                    "--label",
                    "TV",
                    "--url",
                    "https://10.0.1.42:8989",
                    "--api-key",
                    "key",
                ],
            )

        assert result.exit_code == 0, result.output
        assert InstanceRegistry(config.registry.path).instances[0].type is InstanceType.SONARR

    @respx.mock
    def test_wrong_type_exits_2(self, config: Config) -> None:
        respx.get(f"{RADARR_URL}/api/v3/system/status").mock(
            return_value=Response(200, json={"appName": "Sonarr"})
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "add",
                    "--label",
                    "Box",
                    "--url",
                    RADARR_URL,
                    "--api-key",
                    "key",
                    "--type",
                    "radarr",
                ],
            )

        assert result.exit_code == 2
        assert "Wrong Instance Type" in result.output
        assert InstanceRegistry(config.registry.path).instances == ()

    def test_local_url_exits_2(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "add",
                    "--label",
                    "Box",
                    "--url",
                    "http://localhost:7878",
                    "--api-key",
                    "key",
                ],
            )

        assert result.exit_code == 2
        assert "Invalid URL" in result.output

    def test_malformed_header_exits_2(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "add",
                    "--label",
                    "Box",
                    "--url",
                    RADARR_URL,
                    "--api-key",
                    "key",
                    "--header",
                    "no-colon",
                ],
            )

        assert result.exit_code == 2
        assert "Invalid header" in result.output


class TestInstanceManagement:
    """Tests for list, select, headers and remove."""

    def test_list_empty(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "list"])

        assert result.exit_code == 0
        assert "No instances configured" in result.output

    def test_list_marks_selected(self, config: Config) -> None:
        _seed(config, _radarr(), _sonarr())

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "list"])

        assert result.exit_code == 0
        assert "Movies" in result.output
        assert "TV" in result.output
        assert "*" in result.output

    def test_select(self, config: Config) -> None:
        _, tv = _seed(config, _radarr(), _sonarr())

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "select", "tv"])

        assert result.exit_code == 0
        assert InstanceRegistry(config.registry.path).selected_id == tv.id

    def test_select_unknown_exits_2(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "select", "nope"])

        assert result.exit_code == 2
        assert "Instance not found" in result.output

    def test_select_save_failure_exits_2(
        self, config: Config, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Should report a registry that cannot be written instead of crashing."""
        movies, _ = _seed(config, _radarr(), _sonarr())

        def fail(*_args: object) -> None:
            raise OSError("read-only file system")

        monkeypatch.setattr("connectarr.registry.os.replace", fail)

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "select", "tv"])

        assert result.exit_code == 2
        assert "Failed to save instance registry" in result.output
        assert not isinstance(result.exception, OSError)
        assert InstanceRegistry(config.registry.path).selected_id == movies.id

    def test_headers_mask_basic_auth(self, config: Config) -> None:
        instance = _radarr().model_copy(update={"headers": [encode_basic_auth("user", "pw")]})
        _seed(config, instance)

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "headers"])

        assert result.exit_code == 0
        assert "user:****" in result.output
        assert "dXNlcjpwdw" not in result.output

    def test_remove_with_yes(self, config: Config) -> None:
        """Should delete and report the new selection."""
        _seed(config, _radarr(), _sonarr())

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "remove", "Movies", "--yes"])

        assert result.exit_code == 0
        assert "Deleted instance" in result.output
        assert "Selected instance: TV" in result.output
        assert [i.label for i in InstanceRegistry(config.registry.path).instances] == ["TV"]

    def test_remove_declined(self, config: Config) -> None:
        _seed(config, _radarr())

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["instance", "remove", "Movies"], input="n\n")

        assert result.exit_code == 1
        assert len(InstanceRegistry(config.registry.path).instances) == 1


class TestMovieCommands:
    """Tests for 'connectarr movie' commands."""

    @respx.mock
    def test_list_filters_by_state(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get(f"{RADARR_URL}/api/v3/movie").mock(return_value=Response(200, json=MOVIES))

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app, ["movie", "list", "--state", "missing", "--format", "simple"]
            )

        assert result.exit_code == 0, result.output
        assert "Dune (2021) [2]: Missing" in result.output
        assert "The Matrix" not in result.output

    def test_list_requires_radarr(self, config: Config) -> None:
        _seed(config, _sonarr())

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "list"])

        assert result.exit_code == 2
        assert "Radarr" in result.output

    def test_list_without_instances_exits_2(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "list"])

        assert result.exit_code == 2
        assert "No instance selected" in result.output

    @respx.mock
    def test_list_unauthorized(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get(f"{RADARR_URL}/api/v3/movie").mock(return_value=Response(401))

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "list"])

        assert result.exit_code == 2
        assert "Unauthorized" in result.output

    @respx.mock
    def test_releases_simple(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get(f"{RADARR_URL}/api/v3/release", params={"movieId": "2"}).mock(
            return_value=Response(200, json=[RELEASE])
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "releases", "2", "--format", "simple"])

        assert result.exit_code == 0, result.output
        assert "abc" in result.output
        assert "WEBDL-2160p" in result.output
        assert "1.5 GB" in result.output

    @respx.mock
    def test_grab(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get(f"{RADARR_URL}/api/v3/release", params={"movieId": "2"}).mock(
            return_value=Response(200, json=[RELEASE])
        )
        grab = respx.post(f"{RADARR_URL}/api/v3/release").mock(return_value=Response(200))

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "grab", "2", "abc"])

        assert result.exit_code == 0, result.output
        assert "Grabbed" in result.output
        assert json.loads(grab.calls.last.request.content) == {"guid": "abc", "indexerId": 3}

    @respx.mock
    def test_grab_failure_exits_2(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get(f"{RADARR_URL}/api/v3/release", params={"movieId": "2"}).mock(
            return_value=Response(200, json=[RELEASE])
        )
        respx.post(f"{RADARR_URL}/api/v3/release").mock(return_value=Response(500))

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "grab", "2", "abc"])

        assert result.exit_code == 2
        assert "Server Error" in result.output

    @respx.mock
    def test_grab_unknown_guid(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get(f"{RADARR_URL}/api/v3/release", params={"movieId": "2"}).mock(
            return_value=Response(200, json=[RELEASE])
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "grab", "2", "missing"])

        assert result.exit_code == 2
        assert "Release not found" in result.output

    @respx.mock
    def test_edit(self, config: Config) -> None:
        _seed(config, _radarr())
        route = respx.put(f"{RADARR_URL}/api/v3/movie/editor").mock(
            return_value=Response(202, json=MOVIES)
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "edit", "1", "2", "--unmonitored"])

        assert result.exit_code == 0, result.output
        assert json.loads(route.calls.last.request.content) == {
            "movieIds": [1, 2],
            "monitored": False,
        }

    def test_edit_nothing_to_change(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(app, ["movie", "edit", "1"])

        assert result.exit_code == 2
        assert "Nothing to change" in result.output


class TestInstanceEditAndDetect:
    """Tests for 'connectarr instance edit' and 'connectarr instance detect'."""

    @respx.mock
    def test_edit_probes_and_saves(self, config: Config) -> None:
        (movies,) = _seed(config, _radarr())
        respx.get("https://films.example.com/api/v3/system/status").mock(
            return_value=Response(200, json={"appName": "Radarr", "version": "5.3.0"})
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app,
                [
                    "instance",
                    "edit",
                    "Movies",
                    "--label",
                    "Films",
                    "--url",
                    "https://films.example.com",
                    "--header",
                    "X-Role: admin",
                ],
            )

        assert result.exit_code == 0, result.output
        stored = InstanceRegistry(config.registry.path).instances[0]
        assert stored.id == movies.id
        assert stored.label == "Films"
        assert stored.version == "5.3.0"
        assert [(h.name, h.value) for h in stored.headers] == [("X-Role", "admin")]

    @respx.mock
    def test_edit_failed_probe_keeps_instance(self, config: Config) -> None:
        _seed(config, _radarr())
        respx.get("https://films.example.com/api/v3/system/status").mock(
            return_value=Response(401)
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app, ["instance", "edit", "Movies", "--url", "https://films.example.com"]
            )

        assert result.exit_code == 2
        assert "Unauthorized" in result.output
        assert InstanceRegistry(config.registry.path).instances[0].url == RADARR_URL

    @respx.mock
    def test_detect_uses_port(self, config: Config) -> None:
        """Should guess Sonarr from port 8989 and confirm it."""
        config.detection.debounce = 0
        respx.get("https://10.0.1.42:8989/api/v3/system/status").mock(
            return_value=Response(200, json={"appName": "Sonarr", "version": "4.0.1"})
        )

        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app, ["instance", "detect", "https://10.0.1.42:8989", "--api-key", "key"]
            )

        assert result.exit_code == 0, result.output
        assert "Sonarr 4.0.1" in result.output
        assert InstanceRegistry(config.registry.path).instances == ()

    def test_detect_local_url(self, config: Config) -> None:
        with patch("connectarr.cli.Config.load", return_value=config):
            result = runner.invoke(
                app, ["instance", "detect", "http://127.0.0.1:7878", "--api-key", "key"]
            )

        assert result.exit_code == 2
        assert "Invalid URL" in result.output
