"""Preview serving.

Decides whether a path can be previewed, picks the live document or the file
on disk as the source, runs it through the rewrite pipeline and hands back
either markup or a generated handle.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from livepreview.core.content import classify_url, kind_of_path
from livepreview.core.documents import LiveDocument, LiveDocumentCache
from livepreview.core.files import ProjectFiles, normalize
from livepreview.core.probe import CapabilityProbe, ServingStrategy
from livepreview.core.registry import URLRegistry
from livepreview.core.types import ContentKind, Handle, ProjectPath, URLKind
from livepreview.errors import UnexpectedKindError, UnknownHandleError
from livepreview.transport import get_remote_script, inject_script

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServeResult:
    """Outcome of serving a path: markup text or a handle, never both."""

    text: str | None = None
    handle: Handle | None = None

    def __post_init__(self) -> None:
        if (self.text is None) == (self.handle is None):
            raise ValueError("ServeResult needs exactly one of text or handle")

    @property
    def is_handle(self) -> bool:
        return self.handle is not None


class Server(Protocol):
    """What a routing layer needs from a preview server."""

    def can_serve(self, path: str) -> bool: ...

    def path_to_url(self, path: ProjectPath) -> Handle | None: ...

    def url_to_path(self, url: str) -> ProjectPath | None: ...

    async def serve_for_path(self, path: ProjectPath) -> ServeResult: ...


class HTMLRewriter(Protocol):
    """Rewrites markup so embedded resources resolve inside the preview.

    Failures are raised as RewriteError.
    """

    async def rewrite(self, path: ProjectPath, html: str, server: "PreviewServer") -> str: ...


class CSSRewriter(Protocol):
    """Rewrites a stylesheet so its references resolve inside the preview.

    Failures are raised as RewriteError.
    """

    async def rewrite(self, path: ProjectPath, css: str) -> str: ...


class PreviewServer:
    """Serves HTML and CSS for the preview pane.

    Live documents take precedence over disk content. Stylesheets are
    rewritten at most once per registered handle; HTML is delivered as a
    handle or as text depending on the probed serving strategy.
    """

    def __init__(
        self,
        files: ProjectFiles,
        registry: URLRegistry,
        documents: LiveDocumentCache,
        probe: CapabilityProbe,
        *,
        html_rewriter: HTMLRewriter,
        css_rewriter: CSSRewriter,
        transport_script: Callable[[str], str] = get_remote_script,
    ) -> None:
        """Initialize the server.

        Args:
            files: Disk layer for the project
            registry: Handle registry shared with the rewriters
            documents: Live document cache
            probe: Capability probe selecting the HTML serving strategy
            html_rewriter: HTML rewrite pipeline
            css_rewriter: CSS rewrite pipeline
            transport_script: Builds the script injected into HTML read from disk
        """
        self._files = files
        self._registry = registry
        self._documents = documents
        self._probe = probe
        self._html_rewriter = html_rewriter
        self._css_rewriter = css_rewriter
        self._transport_script = transport_script

    @property
    def files(self) -> ProjectFiles:
        return self._files

    @property
    def registry(self) -> URLRegistry:
        return self._registry

    @property
    def documents(self) -> LiveDocumentCache:
        return self._documents

    def can_serve(self, path: str) -> bool:
        """Determine whether this server can serve a path.

        Args:
            path: Project path requested by the routing layer

        Returns:
            True for HTML files and directory paths inside the project
        """
        if normalize(path) is None:
            return False

        # Trailing separator means the directory's default document
        if path.endswith("/"):
            return True

        return kind_of_path(path) is ContentKind.HTML

    def path_to_url(self, path: ProjectPath) -> Handle | None:
        return self._registry.handle_of(path)

    def url_to_path(self, url: str) -> ProjectPath | None:
        """Map a handle or relative URL to a project path.

        Remote URLs belong to other origins and map to None.
        """
        kind = classify_url(url)
        if kind is URLKind.HANDLE:
            return self._registry.path_of(url)
        if kind is URLKind.RELATIVE:
            return normalize(url)
        return None

    def add(self, document: LiveDocument) -> None:
        self._documents.add(document)

    def get(self, path: ProjectPath) -> LiveDocument | None:
        return self._documents.get(path)

    def remove(self, path: ProjectPath) -> bool:
        return self._documents.remove(path)

    def invalidate(self, path: ProjectPath) -> bool:
        """Revoke the handle generated for a path so the next request regenerates it."""
        return self._registry.invalidate(path)

    async def ready_to_serve(self) -> ServingStrategy:
        """Wait for the serving strategy.

        Raises:
            ProbeError: If capability detection failed
        """
        return await self._probe.probe()

    async def serve_for_url(self, url: str) -> ServeResult:
        """Serve the document behind a handle or relative URL.

        Raises:
            UnknownHandleError: If the URL maps to no project path
        """
        path = self.url_to_path(url)
        if path is None:
            raise UnknownHandleError(url)
        return await self.serve_for_path(path)

    async def serve_for_path(self, path: ProjectPath) -> ServeResult:
        """Serve a document, preferring its live version over the file on disk.

        Args:
            path: Project path of an HTML or CSS document, or a directory

        Returns:
            ServeResult with markup text or a handle

        Raises:
            FileNotFoundError: If the path is missing or outside the project
            OSError: If the document has to be read from disk and can't be
                (DecodeError when it is not valid UTF-8)
            RewriteError: If the rewrite pipeline fails
            ProbeError: If HTML is requested and capability detection failed
            UnexpectedKindError: If the document is neither HTML nor CSS
        """
        normalized = normalize(path)
        if normalized is None:
            raise FileNotFoundError(f"Path is outside the project: {path}")
        path = normalized
        if path.endswith("/"):
            path = self._files.default_document(path)

        kind = kind_of_path(path)
        if kind not in (ContentKind.HTML, ContentKind.CSS):
            raise UnexpectedKindError(path, kind)

        if kind is ContentKind.CSS:
            # A stylesheet linked several times is rewritten once
            existing = self._registry.handle_of(path)
            if existing is not None:
                logger.debug(f"Reusing {existing} for {path}")
                return ServeResult(handle=existing)

        document = self._documents.get(path)
        if document is not None:
            body = document.body
        else:
            body = await self._files.read_text(path)
            if kind is ContentKind.HTML:
                # No live document to instrument, so at least inject the
                # transport script for the preview APIs
                body = inject_script(body, self._transport_script(path))

        if kind is ContentKind.HTML:
            return await self._serve_html(path, body)
        return await self._serve_css(path, body)

    async def _serve_html(self, path: ProjectPath, html: str) -> ServeResult:
        strategy = await self._probe.probe()
        rewritten = await self._html_rewriter.rewrite(path, html, self)
        if strategy.use_handle_url:
            return ServeResult(handle=self._registry.create(path, rewritten, "text/html"))
        return ServeResult(text=rewritten)

    async def _serve_css(self, path: ProjectPath, css: str) -> ServeResult:
        rewritten = await self._css_rewriter.rewrite(path, css)
        return ServeResult(handle=self._registry.get_or_create(path, rewritten, "text/css"))
