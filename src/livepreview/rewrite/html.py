"""Markup rewriting.

Replaces relative ``src`` and ``href`` attribute values with handles.
Stylesheets go through the preview server so they are rewritten once and
shared between documents; links to other pages are left for in-pane
navigation.
"""

import logging
import re
from typing import TYPE_CHECKING

from livepreview.core.content import kind_of_path, mime_of_path
from livepreview.core.files import ProjectFiles
from livepreview.core.registry import URLRegistry
from livepreview.core.types import ContentKind, Handle, ProjectPath
from livepreview.rewrite.references import resolve_reference, substitute

if TYPE_CHECKING:
    from livepreview.core.serving import PreviewServer

logger = logging.getLogger(__name__)

_ATTRIBUTE_RE = re.compile(
    r"""(?P<prefix>(?<![\w-])(?:src|href)\s*=\s*)(?P<quote>["'])(?P<url>.*?)(?P=quote)""",
    re.IGNORECASE | re.DOTALL,
)


class MarkupRewriter:
    """Default HTML rewrite pipeline."""

    def __init__(self, files: ProjectFiles, registry: URLRegistry) -> None:
        self._files = files
        self._registry = registry

    async def rewrite(
        self,
        path: ProjectPath,
        html: str,
        server: "PreviewServer",
    ) -> str:
        """Rewrite the resource references in a document.

        Args:
            path: Project path of the document
            html: Document markup
            server: Preview server used to serve linked stylesheets

        Returns:
            Markup with relative resource references replaced by handles

        Raises:
            RewriteError: If a linked stylesheet fails to rewrite
        """

        async def replace(match: re.Match[str]) -> str:
            handle = await self._handle_for(path, match["url"], server)
            if handle is None:
                return match[0]
            quote = match["quote"]
            return f"{match['prefix']}{quote}{handle}{quote}"

        return await substitute(_ATTRIBUTE_RE, html, replace)

    async def _handle_for(
        self,
        base: ProjectPath,
        url: str,
        server: "PreviewServer",
    ) -> Handle | None:
        target = resolve_reference(base, url)
        if target is None or target.endswith("/"):
            return None

        kind = kind_of_path(target)
        if kind is ContentKind.HTML:
            return None

        try:
            if kind is ContentKind.CSS:
                return (await server.serve_for_path(target)).handle

            existing = self._registry.handle_of(target)
            if existing is not None:
                return existing
            payload = await self._files.read_bytes(target)
        except OSError as e:
            logger.warning(f"Leaving {url} in {base} unresolved: {e}")
            return None

        return self._registry.get_or_create(target, payload, mime_of_path(target))
