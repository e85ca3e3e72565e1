"""Preview endpoint.

Serves a project document to the embedded pane, either inline or as a
redirect to the handle it was registered under.
"""

import logging

from aiohttp import web

from livepreview.api.surface import handle_location, to_surface_urls
from livepreview.app_keys import preview_server_key, surface_loader_key, verbose_key
from livepreview.core.types import ProjectPath
from livepreview.errors import ProbeError, RewriteError, UnexpectedKindError
from livepreview.transport import PREVIEW_ROUTE

logger = logging.getLogger(__name__)


def create_preview_routes() -> list[web.RouteDef]:
    return [
        web.get(PREVIEW_ROUTE + "/{path:.*}", get_preview),
        web.get("/", redirect_to_root),
    ]


async def redirect_to_root(request: web.Request) -> web.Response:
    raise web.HTTPFound(PREVIEW_ROUTE + "/")


async def get_preview(request: web.Request) -> web.Response:
    path = ProjectPath("/" + request.match_info["path"])
    server = request.app[preview_server_key]

    if not server.can_serve(path):
        return web.json_response(
            {"error": "Not servable", "path": path},
            status=404,
        )

    loader = request.app.get(surface_loader_key)
    if loader is not None and loader.base_url is None:
        # The pane reaches handles at the same address it reached us
        loader.base_url = str(request.url.origin())

    try:
        result = await server.serve_for_path(path)
    except FileNotFoundError:
        return web.json_response(
            {"error": "File not found", "path": path},
            status=404,
        )
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        return web.json_response({"error": str(e), "path": path}, status=500)
    except UnexpectedKindError as e:
        return web.json_response({"error": str(e), "path": path}, status=415)
    except ProbeError as e:
        return web.json_response({"error": str(e), "path": path}, status=503)
    except RewriteError as e:
        if request.app[verbose_key]:
            logger.exception(f"Rewrite failed for {path}")
        return web.json_response({"error": str(e), "path": path}, status=500)

    if result.handle is not None:
        location = handle_location(server.registry, result.handle)
        if location is None:
            return web.json_response(
                {"error": "Handle not loadable", "path": path},
                status=500,
            )
        raise web.HTTPFound(location)

    return web.Response(
        text=to_surface_urls(server.registry, result.text or ""),
        content_type="text/html",
        charset="utf-8",
        headers={"Cache-Control": "no-store"},
    )
