"""aiohttp surface for the embedded preview pane.

Wires the preview server together and exposes it on a loopback address so
a single embedded pane can load previews and handles.
"""

import logging

from aiohttp import web

from livepreview.api.handles import create_handle_routes
from livepreview.api.preview import create_preview_routes
from livepreview.api.surface import SurfaceLoader
from livepreview.app_keys import (
    live_reload_key,
    preview_server_key,
    registry_key,
    surface_loader_key,
    verbose_key,
)
from livepreview.config import Config
from livepreview.core.documents import LiveDocumentCache
from livepreview.core.files import ProjectFiles
from livepreview.core.probe import (
    CapabilityCheck,
    CapabilityProbe,
    capability_for_mode,
    handle_load_check,
)
from livepreview.core.registry import URLRegistry
from livepreview.core.serving import PreviewServer
from livepreview.live.reload import LiveReloadManager, create_live_reload_routes
from livepreview.rewrite import MarkupRewriter, StylesheetRewriter

logger = logging.getLogger(__name__)


def create_preview_server(
    config: Config,
    *,
    check: CapabilityCheck | None = None,
    registry: URLRegistry | None = None,
) -> PreviewServer:
    """Create a preview server with the default rewrite pipeline.

    Args:
        config: Application configuration
        check: Capability check (default: chosen by preview.handle_urls)
        registry: Handle registry (default: one using the configured origin)

    Returns:
        Configured PreviewServer
    """
    files = ProjectFiles(config.project.root, config.project.default_documents)
    if registry is None:
        registry = URLRegistry(config.origin)
    probe = CapabilityProbe(check or capability_for_mode(config.preview.handle_urls, registry))

    return PreviewServer(
        files,
        registry,
        LiveDocumentCache(),
        probe,
        html_rewriter=MarkupRewriter(files, registry),
        css_rewriter=StylesheetRewriter(files, registry),
    )


def create_app(config: Config, *, verbose: bool = False) -> web.Application:
    """Create aiohttp application.

    Args:
        config: Application configuration
        verbose: Log rewrite failures with tracebacks

    Returns:
        Configured aiohttp application
    """
    app = web.Application()

    registry = URLRegistry(config.origin)
    check = None
    loader = None
    if config.preview.handle_urls == "auto":
        # Handles must be loadable where the pane will look for them
        loader = SurfaceLoader(registry)
        check = handle_load_check(registry, loader)
    server = create_preview_server(config, check=check, registry=registry)

    app[preview_server_key] = server
    app[registry_key] = registry
    app[verbose_key] = verbose
    if loader is not None:
        app[surface_loader_key] = loader

    app.router.add_routes(create_handle_routes())
    app.router.add_routes(create_preview_routes())

    if config.live_reload.enabled:
        manager = LiveReloadManager(server, watch_patterns=config.live_reload.watch_patterns)
        app[live_reload_key] = manager
        app.router.add_routes(create_live_reload_routes(manager))
        app.on_startup.append(_start_live_reload)
        app.on_cleanup.append(_stop_live_reload)

    if loader is None:
        app.on_startup.append(_settle_strategy)

    return app


async def _settle_strategy(app: web.Application) -> None:
    """Settle a configured serving strategy before the first preview request.

    The "auto" check needs the address clients reach us at, so it runs with
    the first preview request instead.
    """
    await app[preview_server_key].ready_to_serve()


async def _start_live_reload(app: web.Application) -> None:
    """Start live reload on application startup."""
    await app[live_reload_key].start()


async def _stop_live_reload(app: web.Application) -> None:
    """Stop live reload on application cleanup."""
    await app[live_reload_key].stop()


def run_server(config: Config, *, verbose: bool = False) -> None:
    """Run the preview surface.

    Args:
        config: Application configuration
        verbose: Log rewrite failures with tracebacks
    """
    app = create_app(config, verbose=verbose)
    logger.info(f"Previewing {config.project.root} at {config.origin}")
    web.run_app(app, host=config.server.host, port=config.server.port)
