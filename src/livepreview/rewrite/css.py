"""Stylesheet rewriting.

Replaces relative ``url(...)`` and ``@import`` references with handles so a
stylesheet loaded from a handle can still find its fonts, images and imports.
"""

import logging
import re

from livepreview.core.content import kind_of_path, mime_of_path
from livepreview.core.files import ProjectFiles
from livepreview.core.registry import URLRegistry
from livepreview.core.types import ContentKind, Handle, ProjectPath
from livepreview.errors import DecodeError, RewriteError
from livepreview.rewrite.references import resolve_reference, substitute

logger = logging.getLogger(__name__)

_URL_RE = re.compile(
    r"""url\(\s*(?P<quote>['"]?)(?P<url>[^'")]+?)(?P=quote)\s*\)""",
    re.IGNORECASE,
)
_IMPORT_RE = re.compile(
    r"""@import\s+(?P<quote>['"])(?P<url>[^'"]+)(?P=quote)""",
    re.IGNORECASE,
)


class StylesheetRewriter:
    """Default CSS rewrite pipeline.

    Referenced files are registered with ``get_or_create``, so a font or image
    shared by several stylesheets gets a single handle. Imported stylesheets
    are rewritten recursively; import cycles are left unresolved.
    """

    def __init__(self, files: ProjectFiles, registry: URLRegistry) -> None:
        self._files = files
        self._registry = registry

    async def rewrite(self, path: ProjectPath, css: str) -> str:
        """Rewrite the references in a stylesheet.

        Args:
            path: Project path of the stylesheet
            css: Stylesheet text

        Returns:
            Stylesheet text with relative references replaced by handles

        Raises:
            RewriteError: If an imported stylesheet is not valid UTF-8
        """
        return await self._rewrite(path, css, frozenset({path}))

    async def _rewrite(
        self,
        path: ProjectPath,
        css: str,
        active: frozenset[ProjectPath],
    ) -> str:
        async def replace_url(match: re.Match[str]) -> str:
            handle = await self._handle_for(path, match["url"], active)
            if handle is None:
                return match[0]
            return f'url("{handle}")'

        async def replace_import(match: re.Match[str]) -> str:
            handle = await self._handle_for(path, match["url"], active)
            if handle is None:
                return match[0]
            return f'@import "{handle}"'

        css = await substitute(_URL_RE, css, replace_url)
        return await substitute(_IMPORT_RE, css, replace_import)

    async def _handle_for(
        self,
        base: ProjectPath,
        url: str,
        active: frozenset[ProjectPath],
    ) -> Handle | None:
        target = resolve_reference(base, url)
        if target is None:
            return None

        if target in active:
            logger.warning(f"Import cycle through {target} in {base}, leaving it as is")
            return None

        existing = self._registry.handle_of(target)
        if existing is not None:
            return existing

        payload: str | bytes
        try:
            if kind_of_path(target) is ContentKind.CSS:
                text = await self._files.read_text(target)
                payload = await self._rewrite(target, text, active | {target})
            else:
                payload = await self._files.read_bytes(target)
        except DecodeError as e:
            raise RewriteError(target, f"not valid UTF-8 ({e.reason})") from e
        except OSError as e:
            logger.warning(f"Leaving {url} in {base} unresolved: {e}")
            return None

        return self._registry.get_or_create(target, payload, mime_of_path(target))
