"""Handle endpoint.

Lets the embedded pane load content registered under ``blob:`` handles. A
handle ``blob:<origin>/<token>`` is served at ``/blob/<token>``.
"""

from aiohttp import web

from livepreview.api.surface import to_surface_urls
from livepreview.app_keys import registry_key
from livepreview.core.content import is_textual
from livepreview.core.registry import RegistryEntry, URLRegistry
from livepreview.transport import HANDLE_ROUTE


def create_handle_routes() -> list[web.RouteDef]:
    return [
        web.get(HANDLE_ROUTE + "{token}", get_handle),
    ]


def entry_for_token(registry: URLRegistry, token: str) -> RegistryEntry | None:
    return registry.resolve(registry.prefix + token)


async def get_handle(request: web.Request) -> web.Response:
    token = request.match_info["token"]
    registry = request.app[registry_key]

    entry = entry_for_token(registry, token)
    if entry is None:
        return web.json_response(
            {"error": "Handle not found", "token": token},
            status=404,
        )

    headers = {"Cache-Control": "no-store"}
    if isinstance(entry.payload, str):
        text = entry.payload
        if is_textual(entry.mime_type):
            text = to_surface_urls(registry, text)
        return web.Response(
            text=text,
            content_type=entry.mime_type,
            charset="utf-8",
            headers=headers,
        )

    return web.Response(
        body=entry.payload,
        content_type=entry.mime_type,
        headers=headers,
    )
