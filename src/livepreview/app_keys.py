"""Application keys for type-safe app configuration access."""

from aiohttp import web

from livepreview.api.surface import SurfaceLoader
from livepreview.core.registry import URLRegistry
from livepreview.core.serving import PreviewServer
from livepreview.live.reload import LiveReloadManager

preview_server_key = web.AppKey("preview_server", PreviewServer)
registry_key = web.AppKey("registry", URLRegistry)
surface_loader_key = web.AppKey("surface_loader", SurfaceLoader)
live_reload_key = web.AppKey("live_reload_manager", LiveReloadManager)
verbose_key = web.AppKey("verbose", bool)
