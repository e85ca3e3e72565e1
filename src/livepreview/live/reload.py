"""WebSocket-based live reload for the preview pane.

Monitors project files for changes, revokes the handles generated from them
and notifies connected previews via WebSocket to reload.
"""

import asyncio
import json
import logging
import weakref
from fnmatch import fnmatchcase
from pathlib import Path

from aiohttp import WSMsgType, web
from watchfiles import Change, awatch

from livepreview.core.content import kind_of_path
from livepreview.core.files import normalize
from livepreview.core.serving import PreviewServer
from livepreview.core.types import ContentKind, ProjectPath
from livepreview.transport import LIVE_RELOAD_ENDPOINT

logger = logging.getLogger(__name__)


class LiveReloadManager:
    """Manages WebSocket connections and file watching for live reload.

    Coordinates between file system watcher and connected WebSocket clients
    to refresh the preview on project file changes.
    """

    def __init__(
        self,
        server: PreviewServer,
        watch_patterns: list[str] | None = None,
    ) -> None:
        """Initialize the live reload manager.

        Args:
            server: Preview server whose handles are revoked on changes
            watch_patterns: Glob patterns to watch (default: ["**/*"])
        """
        self._server = server
        self._root = server.files.root
        self._watch_patterns = watch_patterns or ["**/*"]
        # Open previews and the page each one announced
        self._connections: weakref.WeakKeyDictionary[web.WebSocketResponse, ProjectPath | None] = (
            weakref.WeakKeyDictionary()
        )
        self._watch_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the file watcher."""
        if self._watch_task is not None:
            return
        self._watch_task = asyncio.create_task(self._watch_files())

    async def stop(self) -> None:
        """Stop the file watcher and close all connections."""
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

        for ws in list(self._connections):
            await ws.close()

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """Handle WebSocket connection for live reload.

        A preview page announces the document it shows with a
        ``{"type": "ready", "path": ...}`` message after connecting.

        Args:
            request: aiohttp request

        Returns:
            WebSocket response
        """
        ws = web.WebSocketResponse()
        await ws.prepare(request)

        self._connections[ws] = None
        logger.debug(f"Preview connected ({len(self._connections)} open)")

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    self._handle_message(ws, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    break
        finally:
            self._connections.pop(ws, None)
            logger.debug(f"Preview disconnected ({len(self._connections)} open)")

        return ws

    def _handle_message(self, ws: web.WebSocketResponse, data: str) -> None:
        try:
            message = json.loads(data)
        except ValueError:
            logger.debug(f"Ignoring malformed preview message: {data!r}")
            return

        if not isinstance(message, dict) or message.get("type") != "ready":
            return
        path = message.get("path")
        if isinstance(path, str):
            self._connections[ws] = normalize(path)

    async def _watch_files(self) -> None:
        """Watch for file changes and broadcast reload events."""
        async for changes in awatch(self._root):
            for change_type, path_str in changes:
                path = Path(path_str)
                if not self._matches_patterns(path):
                    continue

                project_path = self._server.files.to_project_path(path)
                if project_path is None:
                    continue

                self.invalidate(project_path)
                if change_type != Change.deleted:
                    await self._broadcast_reload(project_path)

    def invalidate(self, path: ProjectPath) -> None:
        """Revoke handles made stale by a change to path.

        Stylesheets embed the handles of the files they reference, so any
        change to a non-HTML file also revokes every registered stylesheet.

        Args:
            path: Project path that changed
        """
        self._server.invalidate(path)
        if kind_of_path(path) is ContentKind.HTML:
            return
        for registered in self._server.registry.paths():
            if kind_of_path(registered) is ContentKind.CSS:
                self._server.invalidate(registered)
        logger.debug(f"Invalidated handles after change to {path}")

    def _matches_patterns(self, path: Path) -> bool:
        """Check if a path matches any watch pattern.

        Args:
            path: Path to check

        Returns:
            True if path matches any pattern
        """
        try:
            relative = path.relative_to(self._root).as_posix()
        except ValueError:
            return False

        for pattern in self._watch_patterns:
            if fnmatchcase(relative, pattern):
                return True
            # "**/" also matches files directly in the root
            if pattern.startswith("**/") and fnmatchcase(relative, pattern[3:]):
                return True
        return False

    async def _broadcast_reload(self, path: ProjectPath) -> None:
        """Broadcast reload event to connected previews.

        A changed page only reloads previews showing it (or that have not said
        what they show); any other change reloads every preview.

        Args:
            path: Project path that changed
        """
        if not self._connections:
            return

        message = json.dumps({"type": "reload", "path": path})
        page_change = kind_of_path(path) is ContentKind.HTML

        for ws, shown in list(self._connections.items()):
            if ws.closed:
                continue
            if page_change and shown is not None and shown != path:
                continue
            try:
                await ws.send_str(message)
            except ConnectionResetError:
                # Client disconnected mid-send, dropped from the weak mapping
                pass


def create_live_reload_routes(manager: LiveReloadManager) -> list[web.RouteDef]:
    """Create routes for live reload WebSocket.

    Args:
        manager: LiveReloadManager instance

    Returns:
        List of route definitions
    """
    return [web.get(LIVE_RELOAD_ENDPOINT, manager.handle_websocket)]
