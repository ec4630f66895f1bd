"""Command-line interface for connectarr."""

from __future__ import annotations

import asyncio
import json
import os
import sys
from enum import Enum
from pathlib import Path  # noqa: TC003 - needed at runtime for typer
from typing import TYPE_CHECKING, Annotated

import httpx
import typer
from rich.console import Console
from rich.table import Table

from connectarr.clients.radarr import RadarrClient
from connectarr.config import Config, ConfigurationError
from connectarr.errors import ApiError, InstanceError
from connectarr.headers import decode_basic_auth, encode_basic_auth, parse_pasted
from connectarr.library import (
    MovieState,
    certification_label,
    derive_state,
    runtime_label,
    state_label,
    year_label,
)
from connectarr.lifecycle import InstanceLifecycleClient
from connectarr.logging_config import configure_logging
from connectarr.models.instance import InstanceDescriptor, InstanceType
from connectarr.models.radarr import MovieEditorResource, MovieStatus
from connectarr.registry import InstanceRegistry, RegistryChange, RegistryError
from connectarr.releases import (
    ReleaseEvaluator,
    age_label,
    indexer_label,
    peers_label,
    quality_label,
    rejection_summary,
    size_label,
)
from connectarr.urls import TypeDetector, infer_type, normalize_url
from connectarr.validation import has_empty_fields

if TYPE_CHECKING:
    from connectarr.models.common import Release, SystemStatus
    from connectarr.models.instance import InstanceHeader
    from connectarr.models.radarr import Movie

app = typer.Typer(
    name="connectarr",
    help="Manage Radarr/Sonarr instances and work with their libraries.",
    no_args_is_help=True,
)
instance_app = typer.Typer(help="Add, edit, remove and select instances.", no_args_is_help=True)
movie_app = typer.Typer(help="Work with Radarr movies and releases.", no_args_is_help=True)
app.add_typer(instance_app, name="instance")
app.add_typer(movie_app, name="movie")

console = Console()
error_console = Console(stderr=True)


class OutputFormat(str, Enum):
    """Output format options."""

    JSON = "json"
    TABLE = "table"
    SIMPLE = "simple"


class TimeoutChoice(str, Enum):
    """Allowed request timeouts, in seconds."""

    SHORT = "10"
    MEDIUM = "30"
    LONG = "60"


# --- Shared helpers ---


def print_instance_error(error: InstanceError) -> None:
    """Print an instance error as title and recovery suggestion."""
    error_console.print(f"[red]{error.title}:[/red] {error.recovery_suggestion}")


def get_registry(config: Config) -> InstanceRegistry:
    """Create an InstanceRegistry from config."""
    return InstanceRegistry(config.registry.path)


def resolve_instance(registry: InstanceRegistry, key: str | None) -> InstanceDescriptor:
    """Find an instance by id/label, or fall back to the selected one."""
    instance = registry.find(key) if key else registry.selected
    if instance is None:
        if key:
            error_console.print(f"[red]Instance not found:[/red] {key}")
        else:
            error_console.print(
                "[red]No instance selected.[/red] Add one with 'connectarr instance add'."
            )
        raise typer.Exit(2)
    return instance


def require_radarr(instance: InstanceDescriptor) -> None:
    if instance.type is not InstanceType.RADARR:
        error_console.print(
            f"[red]Error:[/red] {instance.label!r} is a {instance.type.value} instance; "
            "movie commands need Radarr."
        )
        raise typer.Exit(2)


def radarr_client(config: Config, instance: InstanceDescriptor) -> RadarrClient:
    return RadarrClient.from_instance(
        instance,
        cache_ttl=config.client.cache_ttl,
        max_retries=config.client.max_retries,
    )


def collect_headers(
    header: list[str] | None,
    basic_auth: str | None,
    paste_headers: Path | None,
) -> list[InstanceHeader]:
    """Build custom headers from the command-line options."""
    headers: list[InstanceHeader] = []
    for raw in header or []:
        parsed = parse_pasted(raw)
        if len(parsed) != 1:
            error_console.print(f"[red]Invalid header:[/red] {raw!r}. Use 'Name: value'.")
            raise typer.Exit(2)
        headers.extend(parsed)

    if paste_headers is not None:
        text = sys.stdin.read() if str(paste_headers) == "-" else paste_headers.read_text()
        headers.extend(parse_pasted(text))

    if basic_auth is not None:
        username, _, password = basic_auth.partition(":")
        headers.append(encode_basic_auth(username, password))

    return headers


def print_selection_change(registry: InstanceRegistry, change: RegistryChange) -> None:
    """Tell the user where the selection moved after a change."""
    if not change.selection_changed:
        return
    selected = registry.get(change.selected_id) if change.selected_id else None
    if selected is None:
        console.print("[yellow]No instance is selected anymore.[/yellow]")
    else:
        console.print(f"[dim]Selected instance: {selected.label}[/dim]")


# --- Global options ---


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Logging level (debug, info, warning, error).",
        ),
    ] = None,
) -> None:
    """Manage Radarr/Sonarr instances and work with their libraries."""
    level = log_level or os.environ.get("CONNECTARR_LOG_LEVEL")
    if level is None:
        try:
            level = Config.load().logging.level
        except ConfigurationError:
            level = "info"
    try:
        configure_logging(level)
    except ValueError as e:
        error_console.print(
            f"[red]Invalid log level:[/red] {level}. Use: debug, info, warning, error"
        )
        raise typer.Exit(1) from e


@app.command()
def version() -> None:
    """Show version information."""
    from connectarr import __version__

    console.print(f"connectarr version {__version__}")


# --- Instance commands ---


@instance_app.command("list")
def list_instances() -> None:
    """List configured instances."""
    try:
        registry = get_registry(Config.load())
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e

    if not registry.instances:
        console.print("[dim]No instances configured[/dim]")
        return

    table = Table(title="Instances")
    table.add_column("", style="green")
    table.add_column("Label", style="cyan")
    table.add_column("Type")
    table.add_column("URL")
    table.add_column("Version")
    table.add_column("ID", style="dim")
    for instance in registry.instances:
        table.add_row(
            "*" if instance.id == registry.selected_id else "",
            instance.label,
            instance.type.value,
            instance.url,
            instance.version or "",
            str(instance.id)[:8],
        )
    console.print(table)


@instance_app.command("add")
def add_instance(
    label: Annotated[str, typer.Option("--label", help="Display name, e.g. Synology")],
    url: Annotated[str, typer.Option("--url", help="URL of the web interface")],
    api_key: Annotated[str, typer.Option("--api-key", help="API key from Settings > General")],
    instance_type: Annotated[
        InstanceType | None,
        typer.Option(
            "--type",
            "-t",
            case_sensitive=False,
            help="Instance type; guessed from the port if omitted",
        ),
    ] = None,
    timeout: Annotated[
        TimeoutChoice, typer.Option("--timeout", help="Request timeout in seconds")
    ] = TimeoutChoice.LONG,
    header: Annotated[
        list[str] | None, typer.Option("--header", "-H", help="Custom header 'Name: value'")
    ] = None,
    basic_auth: Annotated[
        str | None, typer.Option("--basic-auth", help="Add a Basic Authorization header user:pass")
    ] = None,
    paste_headers: Annotated[
        Path | None, typer.Option("--paste-headers", help="Read headers from a file or -")
    ] = None,
) -> None:
    """Add an instance after checking it responds as the right type.

    Examples:
        connectarr instance add --label Synology --url https://10.0.1.42:7878 --api-key KEY
        connectarr instance add --label Remote --url https://tv.example.com --api-key KEY \\
            --type Sonarr --header "CF-Access-Client-Id: abc"
    """
    try:
        config = Config.load()
        registry = get_registry(config)
        instance = InstanceDescriptor(
            label=label,
            url=url,
            api_key=api_key,
            type=instance_type or infer_type(url.strip()) or InstanceType.RADARR,
            timeout=int(timeout.value),
            headers=collect_headers(header, basic_auth, paste_headers),
        )
        if has_empty_fields(instance):
            error_console.print("[red]Error:[/red] Label, URL and API key are required.")
            raise typer.Exit(2)

        form = InstanceLifecycleClient(registry)
        stored = asyncio.run(form.create(instance))
    except typer.Exit:
        raise
    except InstanceError as e:
        print_instance_error(e)
        raise typer.Exit(2) from e
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e

    assert stored is not None
    console.print(
        f"[green]Added {stored.type.value} instance[/green] {stored.label} "
        f"[dim]({stored.id}, version {stored.version or 'unknown'})[/dim]"
    )


@instance_app.command("edit")
def edit_instance(
    instance_key: Annotated[str, typer.Argument(help="Instance id or label")],
    label: Annotated[str | None, typer.Option("--label")] = None,
    url: Annotated[str | None, typer.Option("--url")] = None,
    api_key: Annotated[str | None, typer.Option("--api-key")] = None,
    instance_type: Annotated[
        InstanceType | None, typer.Option("--type", "-t", case_sensitive=False)
    ] = None,
    timeout: Annotated[TimeoutChoice | None, typer.Option("--timeout")] = None,
    header: Annotated[
        list[str] | None, typer.Option("--header", "-H", help="Append 'Name: value'")
    ] = None,
    basic_auth: Annotated[str | None, typer.Option("--basic-auth")] = None,
    paste_headers: Annotated[Path | None, typer.Option("--paste-headers")] = None,
    clear_headers: Annotated[
        bool, typer.Option("--clear-headers", help="Remove existing custom headers first")
    ] = False,
) -> None:
    """Change an instance; it is probed again before saving."""
    try:
        config = Config.load()
        registry = get_registry(config)
        existing = resolve_instance(registry, instance_key)

        headers = [] if clear_headers else list(existing.headers)
        headers.extend(collect_headers(header, basic_auth, paste_headers))

        new_type = instance_type
        if new_type is None and url is not None:
            new_type = infer_type(url.strip())

        changes: dict[str, object] = {"headers": headers}
        if label is not None:
            changes["label"] = label
        if url is not None:
            changes["url"] = url
        if api_key is not None:
            changes["api_key"] = api_key
        if new_type is not None:
            changes["type"] = new_type
        if timeout is not None:
            changes["timeout"] = int(timeout.value)
        updated = InstanceDescriptor.model_validate(existing.model_dump() | changes)

        if has_empty_fields(updated):
            error_console.print("[red]Error:[/red] Label, URL and API key are required.")
            raise typer.Exit(2)

        assert existing.id is not None
        registry.subscribe(lambda change: print_selection_change(registry, change))
        form = InstanceLifecycleClient(registry)
        stored = asyncio.run(form.update(existing.id, updated))
    except typer.Exit:
        raise
    except InstanceError as e:
        print_instance_error(e)
        raise typer.Exit(2) from e
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e

    assert stored is not None
    console.print(f"[green]Updated instance[/green] {stored.label}")


@instance_app.command("remove")
def remove_instance(
    instance_key: Annotated[str, typer.Argument(help="Instance id or label")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")] = False,
) -> None:
    """Delete an instance. This cannot be undone."""
    try:
        config = Config.load()
        registry = get_registry(config)
        instance = resolve_instance(registry, instance_key)
        assert instance.id is not None

        form = InstanceLifecycleClient(registry)
        request = form.request_delete(instance.id)
        if not yes and not typer.confirm(
            f"Are you sure you want to delete the instance {instance.label!r}?"
        ):
            request.cancel()
            console.print("[dim]Cancelled[/dim]")
            raise typer.Exit(1)
        request.confirm()

        registry.subscribe(lambda change: print_selection_change(registry, change))
        asyncio.run(form.delete(request))
    except typer.Exit:
        raise
    except InstanceError as e:
        print_instance_error(e)
        raise typer.Exit(2) from e
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e

    console.print(f"[green]Deleted instance[/green] {instance.label}")


@instance_app.command("select")
def select_instance(
    instance_key: Annotated[str, typer.Argument(help="Instance id or label")],
) -> None:
    """Make an instance the one used by library commands."""
    try:
        registry = get_registry(Config.load())
        instance = resolve_instance(registry, instance_key)
        assert instance.id is not None
        asyncio.run(registry.select(instance.id))
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e
    except RegistryError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2) from e

    console.print(f"Selected {instance.type.value} instance {instance.label}")


@instance_app.command("detect")
def detect_instance(
    url: Annotated[str, typer.Argument(help="URL of the web interface")],
    api_key: Annotated[str, typer.Option("--api-key", help="API key to probe with")],
    header: Annotated[
        list[str] | None, typer.Option("--header", "-H", help="Custom header 'Name: value'")
    ] = None,
) -> None:
    """Check what a URL points at without saving anything.

    The type is guessed from the port first (7878 Radarr, 8989 Sonarr),
    then confirmed against the instance.
    """
    try:
        config = Config.load()
        instance = InstanceDescriptor(
            label="detect",
            url=normalize_url(url),
            api_key=api_key,
            headers=collect_headers(header, None, None),
        )

        async def _detect() -> SystemStatus | None:
            detector = TypeDetector(debounce=config.detection.debounce)
            detector.commit(instance)
            return await detector.wait()

        status = asyncio.run(_detect())
    except typer.Exit:
        raise
    except InstanceError as e:
        print_instance_error(e)
        raise typer.Exit(2) from e
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e

    if status is None:
        error_console.print("[red]Error:[/red] An API key is required to probe the instance.")
        raise typer.Exit(2)
    console.print(
        f"[green]{status.app_name}[/green] {status.version or ''} at {instance.url}",
        highlight=False,
    )


@instance_app.command("headers")
def show_headers(
    instance_key: Annotated[str | None, typer.Argument(help="Instance id or label")] = None,
) -> None:
    """Show an instance's custom headers; Basic credentials are masked."""
    try:
        registry = get_registry(Config.load())
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e

    instance = resolve_instance(registry, instance_key)
    if not instance.headers:
        console.print("[dim]No custom headers[/dim]")
        return

    table = Table(title=f"Headers: {instance.label}")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    for item in instance.headers:
        credentials = decode_basic_auth(item)
        value = f"Basic {credentials[0]}:****" if credentials else item.value
        table.add_row(item.name, value)
    console.print(table)


# --- Movie commands ---


def format_movie_simple(movie: Movie) -> str:
    return f"{movie.title} ({year_label(movie)}) [{movie.id}]: {state_label(movie)}"


def movie_to_dict(movie: Movie) -> dict[str, object]:
    return {
        "id": movie.id,
        "title": movie.title,
        "year": movie.year,
        "state": state_label(movie),
        "status": movie.status.value,
        "monitored": movie.monitored,
        "runtime": runtime_label(movie),
        "certification": certification_label(movie),
    }


def release_to_dict(release: Release) -> dict[str, object]:
    return {
        "guid": release.guid,
        "indexer_id": release.indexer_id,
        "title": release.title,
        "quality": quality_label(release),
        "size": size_label(release),
        "age": age_label(release),
        "indexer": indexer_label(release),
        "peers": peers_label(release),
        "rejections": release.rejections,
    }


@movie_app.command("list")
def list_movies(
    state: Annotated[
        MovieState | None,
        typer.Option(
            "--state", "-s", case_sensitive=False, help="Only show movies in this state"
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TABLE,
    instance_key: Annotated[str | None, typer.Option("--instance", "-i")] = None,
) -> None:
    """List movies with their derived state (Downloaded, Waiting, Missing, Unwanted)."""

    async def _fetch(client: RadarrClient) -> list[Movie]:
        async with client:
            return await client.get_all_movies()

    try:
        config = Config.load()
        instance = resolve_instance(get_registry(config), instance_key)
        require_radarr(instance)
        movies = asyncio.run(_fetch(radarr_client(config, instance)))
    except typer.Exit:
        raise
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e
    except (httpx.HTTPError, ValueError) as e:
        print_instance_error(ApiError(e))
        raise typer.Exit(2) from e

    if state is not None:
        movies = [m for m in movies if derive_state(m) is state]
    movies.sort(key=lambda m: (m.sort_title or m.title).lower())

    if output_format == OutputFormat.JSON:
        console.print(json.dumps([movie_to_dict(m) for m in movies], indent=2))
    elif output_format == OutputFormat.SIMPLE:
        for movie in movies:
            console.print(format_movie_simple(movie), highlight=False)
    else:
        table = Table(title=f"Movies: {instance.label}")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Year")
        table.add_column("Status")
        table.add_column("State")
        for movie in movies:
            table.add_row(
                str(movie.id),
                movie.title,
                year_label(movie),
                movie.status.label,
                state_label(movie),
            )
        console.print(table)


async def _search_releases(client: RadarrClient, movie_id: int) -> list[Release]:
    async with client:
        return await client.get_movie_releases(movie_id)


@movie_app.command("releases")
def list_releases(
    movie_id: Annotated[int, typer.Argument(help="Radarr movie ID")],
    output_format: Annotated[
        OutputFormat, typer.Option("--format", "-f", help="Output format")
    ] = OutputFormat.TABLE,
    instance_key: Annotated[str | None, typer.Option("--instance", "-i")] = None,
) -> None:
    """Search indexers for a movie's releases."""
    try:
        config = Config.load()
        instance = resolve_instance(get_registry(config), instance_key)
        require_radarr(instance)
        releases = asyncio.run(_search_releases(radarr_client(config, instance), movie_id))
    except typer.Exit:
        raise
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e
    except (httpx.HTTPError, ValueError) as e:
        print_instance_error(ApiError(e))
        raise typer.Exit(2) from e

    if output_format == OutputFormat.JSON:
        console.print(json.dumps([release_to_dict(r) for r in releases], indent=2))
        return
    if output_format == OutputFormat.SIMPLE:
        for release in releases:
            console.print(
                f"{release.guid}  {release.title}  "
                f"{quality_label(release)} • {size_label(release)} • {age_label(release)}",
                highlight=False,
            )
        return

    table = Table(title=f"Releases for movie {movie_id}")
    table.add_column("Title", style="cyan")
    table.add_column("Quality")
    table.add_column("Size")
    table.add_column("Age")
    table.add_column("Indexer")
    table.add_column("Peers")
    table.add_column("Rejected", style="yellow")
    for release in releases:
        table.add_row(
            release.title,
            quality_label(release),
            size_label(release),
            age_label(release),
            indexer_label(release),
            peers_label(release) or "",
            rejection_summary(release) or "",
        )
    console.print(table)


@movie_app.command("grab")
def grab_release(
    movie_id: Annotated[int, typer.Argument(help="Radarr movie ID")],
    guid: Annotated[str, typer.Argument(help="Release GUID from 'movie releases'")],
    instance_key: Annotated[str | None, typer.Option("--instance", "-i")] = None,
) -> None:
    """Send a release to the download client."""

    async def _grab(client: RadarrClient) -> tuple[Release | None, ReleaseEvaluator]:
        async with client:
            evaluator = ReleaseEvaluator(client)
            releases = await client.get_movie_releases(movie_id)
            release = next((r for r in releases if r.guid == guid), None)
            if release is not None:
                await evaluator.acquire(release)
            return release, evaluator

    try:
        config = Config.load()
        instance = resolve_instance(get_registry(config), instance_key)
        require_radarr(instance)
        release, evaluator = asyncio.run(_grab(radarr_client(config, instance)))
    except typer.Exit:
        raise
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e
    except (httpx.HTTPError, ValueError) as e:
        print_instance_error(ApiError(e))
        raise typer.Exit(2) from e

    if release is None:
        error_console.print(f"[red]Release not found:[/red] {guid}")
        raise typer.Exit(2)
    if evaluator.error.current is not None:
        print_instance_error(evaluator.error.current)
        raise typer.Exit(2)
    console.print(f"[green]Grabbed[/green] {release.title}")


@movie_app.command("edit")
def edit_movies(
    movie_ids: Annotated[list[int], typer.Argument(help="Radarr movie IDs")],
    monitored: Annotated[
        bool | None, typer.Option("--monitored/--unmonitored", help="Monitor or unmonitor")
    ] = None,
    quality_profile: Annotated[int | None, typer.Option("--quality-profile")] = None,
    availability: Annotated[
        MovieStatus | None,
        typer.Option("--availability", case_sensitive=False, help="Minimum availability"),
    ] = None,
    root_folder: Annotated[str | None, typer.Option("--root-folder")] = None,
    move_files: Annotated[bool, typer.Option("--move-files")] = False,
    instance_key: Annotated[str | None, typer.Option("--instance", "-i")] = None,
) -> None:
    """Batch edit movies; only the options given are changed."""
    edit = MovieEditorResource(
        movie_ids=movie_ids,
        monitored=monitored,
        quality_profile_id=quality_profile,
        minimum_availability=availability,
        root_folder_path=root_folder,
        move_files=True if move_files and root_folder else None,
    )
    if len(edit.to_api()) == 1:
        error_console.print("[red]Error:[/red] Nothing to change.")
        raise typer.Exit(2)

    async def _edit(client: RadarrClient) -> list[Movie]:
        async with client:
            return await client.edit_movies(edit)

    try:
        config = Config.load()
        instance = resolve_instance(get_registry(config), instance_key)
        require_radarr(instance)
        movies = asyncio.run(_edit(radarr_client(config, instance)))
    except typer.Exit:
        raise
    except ConfigurationError as e:
        error_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(2) from e
    except (httpx.HTTPError, ValueError) as e:
        print_instance_error(ApiError(e))
        raise typer.Exit(2) from e

    console.print(f"[green]Updated {len(movies) or len(movie_ids)} movie(s)[/green]")


if __name__ == "__main__":
    app()
