"""Live documents: open, possibly unsaved documents that override disk content."""

import logging
from dataclasses import dataclass
from typing import Protocol

from livepreview.core.content import kind_of_path
from livepreview.core.types import ContentKind, ProjectPath
from livepreview.transport import get_remote_script, inject_script

logger = logging.getLogger(__name__)

_INSTRUMENTED_KINDS = (ContentKind.HTML, ContentKind.CSS)


class LiveDocument(Protocol):
    """Protocol for documents supplied by the editor.

    Documents may also expose ``set_instrumentation_enabled(enabled: bool)``;
    the cache switches it on when such a document is added.
    """

    @property
    def path(self) -> ProjectPath: ...

    @property
    def body(self) -> str: ...


@dataclass
class EditorDocument:
    """In-memory document as held by the editor.

    When instrumentation is enabled on an HTML document, its body carries the
    transport script so the preview stays connected to the pane.
    """

    path: ProjectPath
    text: str
    instrumentation_enabled: bool = False

    @property
    def kind(self) -> ContentKind:
        return kind_of_path(self.path)

    @property
    def body(self) -> str:
        if self.instrumentation_enabled and self.kind is ContentKind.HTML:
            return inject_script(self.text, get_remote_script(self.path))
        return self.text

    def set_instrumentation_enabled(self, enabled: bool) -> None:
        self.instrumentation_enabled = enabled


class LiveDocumentCache:
    """Table of live documents keyed by project path.

    Holds references only; documents stay owned by the editor.
    """

    def __init__(self) -> None:
        self._documents: dict[ProjectPath, LiveDocument] = {}

    def add(self, document: LiveDocument) -> None:
        """Register a document, replacing any previous one for the same path.

        HTML and CSS documents that support instrumentation get it enabled.

        Args:
            document: Live document to register
        """
        if kind_of_path(document.path) in _INSTRUMENTED_KINDS:
            set_instrumentation = getattr(document, "set_instrumentation_enabled", None)
            if set_instrumentation is not None:
                set_instrumentation(True)
        self._documents[document.path] = document
        logger.debug(f"Live document added: {document.path}")

    def get(self, path: ProjectPath) -> LiveDocument | None:
        return self._documents.get(path)

    def remove(self, path: ProjectPath) -> bool:
        """Drop the document for a path.

        Returns:
            True if a document was registered for the path
        """
        removed = self._documents.pop(path, None) is not None
        if removed:
            logger.debug(f"Live document removed: {path}")
        return removed

    def paths(self) -> list[ProjectPath]:
        return list(self._documents)

    def __contains__(self, path: object) -> bool:
        return path in self._documents

    def __len__(self) -> int:
        return len(self._documents)
