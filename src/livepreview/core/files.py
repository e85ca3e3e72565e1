"""Project file access.

Translates project paths ("/dir/page.html") into filesystem paths under the
project root and reads them without blocking the event loop.
"""

import asyncio
from pathlib import Path

from livepreview.core.types import ProjectPath
from livepreview.errors import DecodeError

DEFAULT_DOCUMENTS = ("index.html", "index.htm")


def normalize(path: str) -> ProjectPath | None:
    """Normalize a project path.

    Collapses "." and ".." segments and duplicate separators while keeping a
    trailing separator.

    Args:
        path: Project path, with or without the leading "/"

    Returns:
        Normalized path starting with "/", or None if it climbs above the root
    """
    parts: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                return None
            parts.pop()
            continue
        parts.append(segment)

    normalized = "/" + "/".join(parts)
    if path.endswith("/") and parts:
        normalized += "/"
    return ProjectPath(normalized)


class ProjectFiles:
    """Disk layer rooted at the project directory."""

    def __init__(
        self,
        root: Path,
        default_documents: list[str] | tuple[str, ...] = DEFAULT_DOCUMENTS,
    ) -> None:
        """Initialize the disk layer.

        Args:
            root: Project root directory
            default_documents: File names tried, in order, for directory paths
        """
        self._root = root
        self._default_documents = tuple(default_documents)

    @property
    def root(self) -> Path:
        """Project root directory."""
        return self._root

    def resolve(self, path: str) -> Path | None:
        """Map a project path to a filesystem path.

        Args:
            path: Project path

        Returns:
            Filesystem path under the root, or None if the path escapes it
        """
        normalized = normalize(path)
        if normalized is None:
            return None
        return self._root.joinpath(*normalized.strip("/").split("/"))

    def to_project_path(self, file_path: Path) -> ProjectPath | None:
        """Convert a filesystem path to a project path.

        Args:
            file_path: Absolute filesystem path

        Returns:
            Project path (e.g., "/css/site.css"), or None outside the root
        """
        try:
            relative = file_path.relative_to(self._root)
        except ValueError:
            return None
        return ProjectPath("/" + relative.as_posix())

    def default_document(self, path: ProjectPath) -> ProjectPath:
        """Resolve a directory path to its default document.

        Picks the first configured default document that exists, falling back
        to the first name so a missing index surfaces as a read error.

        Args:
            path: Project path ending in "/"

        Returns:
            Project path of the document to serve
        """
        directory = self.resolve(path)
        if directory is not None:
            for name in self._default_documents:
                if (directory / name).is_file():
                    return ProjectPath(f"{path}{name}")
        return ProjectPath(f"{path}{self._default_documents[0]}")

    async def read_text(self, path: ProjectPath) -> str:
        """Read a project file as UTF-8 text.

        Raises:
            FileNotFoundError: If the file is missing or outside the root
            DecodeError: If the file is not valid UTF-8
            OSError: On other read failures
        """
        file_path = self._require(path)
        try:
            return await asyncio.to_thread(file_path.read_text, encoding="utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(path, e.reason) from e

    async def read_bytes(self, path: ProjectPath) -> bytes:
        """Read a project file as bytes.

        Raises:
            FileNotFoundError: If the file is missing or outside the root
            OSError: On other read failures
        """
        file_path = self._require(path)
        return await asyncio.to_thread(file_path.read_bytes)

    def _require(self, path: ProjectPath) -> Path:
        file_path = self.resolve(path)
        if file_path is None:
            raise FileNotFoundError(f"Path is outside the project: {path}")
        return file_path
