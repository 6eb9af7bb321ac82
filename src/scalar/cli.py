"""Scalar CLI — presentation layer.

Thin adapter: all business logic lives in core.
The CLI only maps user intents to domain calls and formats output.
"""

from __future__ import annotations

from pathlib import Path

import structlog
import typer
from pydantic import ValidationError
from rich import print
from rich.markup import escape
from rich.table import Table

from scalar.core.cache_servers import (
    CacheServerResolver,
    describe,
    get_cache_server_from_config,
)
from scalar.core.enlistment import Enlistment
from scalar.core.errors import (
    CacheServerNotFound,
    ConfigReadError,
    EnlistmentNotFound,
    InvalidCacheServerArgument,
    RegistryInvalid,
    RegistryNotFound,
)
from scalar.core.logging import configure_logging
from scalar.core.paths import find_enlistment_root
from scalar.core.settings import Settings
from scalar.core.state import is_terminal
from scalar.modules.url_guard import redact_credentials
from scalar.registry import CacheServerRegistry, load_registry

logger = structlog.get_logger()

app = typer.Typer(help="Scalar: enlistment discovery and cache-server configuration.")


# ── Callback (runs before every command) ────────────────────
@app.callback(invoke_without_command=True)
def _main_callback(  # pyright: ignore[reportUnusedFunction]
    ctx: typer.Context,
    log_level: str = typer.Option("INFO", "--log-level", envvar="SCALAR_LOG_LEVEL", help="Log level."),
    log_json: bool = typer.Option(True, "--log-json/--log-text", envvar="SCALAR_LOG_JSON", help="JSON or human logs."),
) -> None:
    """Configure logging, then store options in context for sub-commands."""
    configure_logging(level=log_level, json_output=log_json)
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["log_json"] = log_json

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())


def _build_settings(**values: object) -> Settings:
    try:
        return Settings(**values)  # type: ignore[arg-type]
    except EnlistmentNotFound as exc:
        print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=2)
    except ValidationError as exc:
        print(f"[red]ERROR:[/red] invalid settings: {escape(str(exc))}")
        raise typer.Exit(code=2)


def _settings(ctx: typer.Context) -> Settings:
    """Return settings, resolving the enlistment from cwd on first use."""
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = _build_settings(log_level=ctx.obj["log_level"], log_json=ctx.obj["log_json"])
    return ctx.obj["settings"]


def _registry(settings: Settings, override: Path | None) -> CacheServerRegistry | None:
    path = override or settings.registry_path
    if path is None:
        return None
    try:
        return load_registry(path, max_size_bytes=settings.registry_max_size_bytes)
    except (RegistryNotFound, RegistryInvalid) as exc:
        print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=1)


# ── Commands ────────────────────────────────────────────────
@app.command()
def locate(
    path: Path = typer.Argument(None, help="Any path inside the enlistment (default: cwd)."),
) -> None:
    """Print the enlistment root and working directory containing PATH."""
    try:
        roots = find_enlistment_root(path)
    except EnlistmentNotFound as exc:
        print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=2)

    print(f"  Enlistment root   : {roots.enlistment_root}")
    print(f"  Working directory : {roots.working_directory_root}")
    logger.info("locate_completed", enlistment_root=str(roots.enlistment_root))


@app.command()
def paths(
    ctx: typer.Context,
    cache_root: Path = typer.Option(None, "--cache-root", help="Shared object cache root."),
    cache_key: str = typer.Option(None, "--cache-key", help="Cache key under the cache root."),
) -> None:
    """Show the enlistment's object, pack and cache paths."""
    s = _settings(ctx)
    if cache_root is not None or cache_key is not None:
        values = s.model_dump()
        values.update(
            local_cache_root=cache_root or s.local_cache_root,
            cache_key=cache_key or s.cache_key,
        )
        s = _build_settings(**values)
    enlistment = s.enlistment()

    table = Table(title="Enlistment paths", show_lines=False)
    table.add_column("Path", style="bold")
    table.add_column("Value")
    rows: list[tuple[str, object]] = [
        ("Enlistment root", enlistment.enlistment_root),
        ("Working directory", enlistment.working_directory_root),
        ("Local objects", enlistment.local_objects_root),
        ("Local cache", enlistment.local_cache_root),
        ("Git objects", enlistment.git_objects_root),
        ("Git packs", enlistment.git_pack_root),
        ("Remote protocol", enlistment.uses_remote_protocol),
    ]
    for label, value in rows:
        table.add_row(label, str(value))
    print(table)


@app.command(name="cache-server")
def cache_server(
    ctx: typer.Context,
    set_value: str = typer.Option(None, "--set", help="Cache server name, URL, 'Default' or 'None'."),
    list_servers: bool = typer.Option(False, "--list", help="List cache servers from the registry."),
    registry_path: Path = typer.Option(None, "--registry", help="Registry document (YAML or JSON)."),
) -> None:
    """Get, set or list the enlistment's cache server."""
    s = _settings(ctx)
    registry = _registry(s, registry_path)

    if list_servers:
        _list_cache_servers(registry)
        return

    enlistment = s.enlistment()
    if set_value is not None:
        _set_cache_server(enlistment, set_value, registry)
    else:
        _get_cache_server(enlistment, registry)


def _list_cache_servers(registry: CacheServerRegistry | None) -> None:
    if registry is None:
        print("[red]ERROR:[/red] --list needs a registry (--registry or SCALAR_REGISTRY_PATH).")
        raise typer.Exit(code=1)
    if not registry.cache_servers:
        print("[yellow]No cache servers advertised.[/yellow]")
        return

    table = Table(title="Cache servers", show_lines=False)
    table.add_column("Name", style="bold")
    table.add_column("URL")
    table.add_column("Default")
    for entry in registry.cache_servers:
        table.add_row(escape(entry.name), escape(redact_credentials(entry.url)), "yes" if entry.global_default else "")
    print(table)


def _get_cache_server(enlistment: Enlistment, registry: CacheServerRegistry | None) -> None:
    try:
        cache = get_cache_server_from_config(enlistment)
        if not is_terminal(cache) and registry is not None:
            cache = CacheServerResolver(enlistment).resolve(cache, registry)
    except ConfigReadError as exc:
        print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=1)

    print(f"Using cache server: {escape(describe(cache))}")


def _set_cache_server(enlistment: Enlistment, value: str, registry: CacheServerRegistry | None) -> None:
    resolver = CacheServerResolver(enlistment)
    try:
        cache = resolver.parse_url_or_friendly_name(value)
        if not is_terminal(cache):
            if registry is None:
                print(
                    f"[red]ERROR:[/red] resolving '{escape(value)}' needs a registry "
                    "(--registry or SCALAR_REGISTRY_PATH)."
                )
                raise typer.Exit(code=1)
            cache = resolver.resolve(cache, registry)
    except (InvalidCacheServerArgument, CacheServerNotFound, ConfigReadError) as exc:
        print(f"[red]ERROR:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    ok, error = resolver.try_save_url_to_local_config(cache)
    if not ok:
        print(f"[red]ERROR:[/red] could not save cache server: {escape(error)}")
        raise typer.Exit(code=1)
    print(f"[green]Cache server set:[/green] {escape(describe(cache))}")


# ── Entrypoint ──────────────────────────────────────────────
def main() -> None:  # noqa: D103
    app()
