"""Registry of generated handles.

Maps project paths to opaque ``blob:`` handles and back. A path owns at most
one live handle at a time; entries are only dropped through ``invalidate()``
or ``create()``.
"""

import logging
import uuid
from dataclasses import dataclass

from livepreview.core.content import HANDLE_SCHEME
from livepreview.core.types import Handle, ProjectPath

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "livepreview"


@dataclass(frozen=True)
class RegistryEntry:
    """Content registered under a handle."""

    path: ProjectPath
    handle: Handle
    mime_type: str
    payload: str | bytes


class URLRegistry:
    """Bidirectional mapping between project paths and generated handles.

    Not thread-safe. All mutation is expected to happen on the event loop
    that serves previews.
    """

    def __init__(self, origin: str = DEFAULT_ORIGIN) -> None:
        """Initialize an empty registry.

        Args:
            origin: Origin embedded in generated handles (e.g., "http://127.0.0.1:8080")
        """
        self._prefix = f"{HANDLE_SCHEME}{origin}/"
        self._by_path: dict[ProjectPath, RegistryEntry] = {}
        self._by_handle: dict[Handle, RegistryEntry] = {}

    @property
    def prefix(self) -> str:
        """Common prefix of every handle this registry generates."""
        return self._prefix

    def get_or_create(
        self,
        path: ProjectPath,
        payload: str | bytes,
        mime_type: str,
    ) -> Handle:
        """Return the handle for a path, registering the payload if there is none.

        An existing handle is returned unchanged and its payload is kept.

        Args:
            path: Project path the content belongs to
            payload: Content to register
            mime_type: MIME type the content is served with

        Returns:
            Handle for the path
        """
        existing = self._by_path.get(path)
        if existing is not None:
            return existing.handle
        return self._register(path, payload, mime_type)

    def create(
        self,
        path: ProjectPath,
        payload: str | bytes,
        mime_type: str,
    ) -> Handle:
        """Register content under a fresh handle, revoking any previous one.

        Args:
            path: Project path the content belongs to
            payload: Content to register
            mime_type: MIME type the content is served with

        Returns:
            Newly generated handle
        """
        self.invalidate(path)
        return self._register(path, payload, mime_type)

    def handle_of(self, path: ProjectPath) -> Handle | None:
        entry = self._by_path.get(path)
        return entry.handle if entry is not None else None

    def path_of(self, handle: str) -> ProjectPath | None:
        entry = self._by_handle.get(Handle(handle))
        return entry.path if entry is not None else None

    def resolve(self, handle: str) -> RegistryEntry | None:
        """Look up the entry registered under a handle."""
        return self._by_handle.get(Handle(handle))

    def invalidate(self, path: ProjectPath) -> bool:
        """Remove the handle registered for a path.

        Args:
            path: Project path to invalidate

        Returns:
            True if an entry was removed
        """
        entry = self._by_path.pop(path, None)
        if entry is None:
            return False
        del self._by_handle[entry.handle]
        logger.debug(f"Revoked {entry.handle} for {path}")
        return True

    def paths(self) -> list[ProjectPath]:
        return list(self._by_path)

    def clear(self) -> None:
        """Remove all entries."""
        self._by_path.clear()
        self._by_handle.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __len__(self) -> int:
        return len(self._by_path)

    def _register(
        self,
        path: ProjectPath,
        payload: str | bytes,
        mime_type: str,
    ) -> Handle:
        handle = Handle(f"{self._prefix}{uuid.uuid4()}")
        entry = RegistryEntry(
            path=path,
            handle=handle,
            mime_type=mime_type,
            payload=payload,
        )
        self._by_path[path] = entry
        self._by_handle[handle] = entry
        logger.debug(f"Registered {handle} for {path} ({mime_type})")
        return handle
