"""Surface URLs for handles.

A handle ``blob:<origin>/<token>`` is served at ``/blob/<token>``. The
helpers here translate between the two and load handles back over HTTP the
way the preview pane does.
"""

import logging

import aiohttp

from livepreview.core.registry import RegistryEntry, URLRegistry
from livepreview.core.types import Handle
from livepreview.transport import HANDLE_ROUTE

logger = logging.getLogger(__name__)

DEFAULT_LOAD_TIMEOUT = 5.0


def handle_location(registry: URLRegistry, handle: str) -> str | None:
    """Surface-local URL for a handle, or None for foreign handles."""
    if not handle.startswith(registry.prefix):
        return None
    return HANDLE_ROUTE + handle.removeprefix(registry.prefix)


def to_surface_urls(registry: URLRegistry, text: str) -> str:
    """Point every handle embedded in text at the handle endpoint."""
    return text.replace(registry.prefix, HANDLE_ROUTE)


class SurfaceLoader:
    """Loads handles from the running surface over HTTP.

    The surface's own address is only known once a client has reached it, so
    ``base_url`` starts unset and is filled in from the first preview
    request. Until then, and whenever the request fails, nothing loads.
    """

    def __init__(
        self,
        registry: URLRegistry,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_LOAD_TIMEOUT,
    ) -> None:
        """Initialize the loader.

        Args:
            registry: Registry the handles belong to
            base_url: Scheme and authority of the surface (e.g. "http://127.0.0.1:8080")
            timeout: Total seconds allowed for one load
        """
        self._registry = registry
        self._timeout = timeout
        self.base_url = base_url

    async def __call__(self, handle: str) -> RegistryEntry | None:
        location = handle_location(self._registry, handle)
        path = self._registry.path_of(handle)
        if location is None or path is None:
            return None
        if self.base_url is None:
            logger.warning(f"Surface address unknown, cannot load {handle}")
            return None

        url = self.base_url.rstrip("/") + location
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as session:
                async with session.get(url, allow_redirects=False) as response:
                    if response.status != 200:
                        logger.warning(f"Loading {url} returned HTTP {response.status}")
                        return None
                    mime_type = response.content_type
                    payload = await response.text()
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"Loading {url} failed: {e}")
            return None

        return RegistryEntry(path, Handle(handle), mime_type, payload)
