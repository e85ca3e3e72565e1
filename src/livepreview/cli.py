"""CLI interface for livepreview.

Command-line tool for previewing a project tree in an embedded pane.
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from livepreview.config import Config
from livepreview.core.probe import HANDLE_URL_MODES
from livepreview.core.registry import URLRegistry
from livepreview.core.serving import ServeResult
from livepreview.core.types import ProjectPath
from livepreview.errors import PreviewError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(
    config_path: Path | None,
    *,
    root: Path | None = None,
    host: str | None = None,
    port: int | None = None,
    handle_urls: str | None = None,
    live_reload_enabled: bool | None = None,
) -> Config:
    try:
        return Config.load(config_path).with_overrides(
            root=root,
            host=host,
            port=port,
            handle_urls=handle_urls,
            live_reload_enabled=live_reload_enabled,
        )
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover livepreview.toml)",
)

root_option = click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, path_type=Path, file_okay=False),
    default=None,
    help="Project root directory (overrides config)",
)

handle_urls_option = click.option(
    "--handle-urls",
    type=click.Choice(HANDLE_URL_MODES),
    default=None,
    help="Deliver HTML as handles: auto-detect, always or never (overrides config)",
)


@click.group()
def cli() -> None:
    """livepreview - live preview of edited HTML and CSS."""


@cli.command()
@config_option
@root_option
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@handle_urls_option
@click.option(
    "--live-reload/--no-live-reload",
    default=None,
    help="Enable/disable live reload (overrides config, default: enabled)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def serve(
    config_path: Path | None,
    root: Path | None,
    host: str | None,
    port: int | None,
    handle_urls: str | None,
    live_reload: bool | None,
    verbose: bool,
) -> None:
    """Start the preview surface for the embedded pane."""
    from livepreview.server import run_server

    _configure_logging(verbose)
    config = _load_config(
        config_path,
        root=root,
        host=host,
        port=port,
        handle_urls=handle_urls,
        live_reload_enabled=live_reload,
    )

    click.echo(f"Starting preview surface on {config.server.host}:{config.server.port}")
    click.echo(f"Project root: {config.project.root}")
    click.echo(f"Handle URLs: {config.preview.handle_urls}")
    if config.live_reload.enabled:
        click.echo("Live reload: enabled")
    else:
        click.echo("Live reload: disabled")

    run_server(config, verbose=verbose)


@cli.command()
@click.argument("path")
@config_option
@root_option
@handle_urls_option
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def render(
    path: str,
    config_path: Path | None,
    root: Path | None,
    handle_urls: str | None,
    verbose: bool,
) -> None:
    """Serve a single project PATH and print the result."""
    from livepreview.server import create_preview_server

    _configure_logging(verbose)
    config = _load_config(config_path, root=root, handle_urls=handle_urls)
    if not path.startswith("/"):
        path = f"/{path}"

    server = create_preview_server(config)
    if not server.can_serve(path):
        click.echo(click.style(f"Error: cannot serve {path}", fg="red"), err=True)
        sys.exit(1)

    try:
        result = asyncio.run(server.serve_for_path(ProjectPath(path)))
    except (OSError, PreviewError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    _print_result(result, server.registry)


def _print_result(result: ServeResult, registry: URLRegistry) -> None:
    if result.handle is None:
        click.echo(result.text)
        return

    click.echo(f"Handle: {result.handle}")
    entry = registry.resolve(result.handle)
    if entry is not None and isinstance(entry.payload, str):
        click.echo(entry.payload)


if __name__ == "__main__":
    cli()
