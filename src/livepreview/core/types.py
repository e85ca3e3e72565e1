"""Core type definitions."""

from enum import StrEnum
from typing import NewType

# Project-relative path (e.g., "/index.html", "/assets/")
# Distinct from filesystem Path to catch type mismatches
ProjectPath = NewType("ProjectPath", str)

# Opaque generated URL standing in for a path's content (e.g., "blob:livepreview/<uuid>")
Handle = NewType("Handle", str)


class ContentKind(StrEnum):
    """Content kind derived from a file extension."""

    HTML = "html"
    CSS = "css"
    IMAGE = "image"
    MARKDOWN = "markdown"
    OTHER = "other"


class URLKind(StrEnum):
    """Classification of a URL string found in a document."""

    RELATIVE = "relative"
    HANDLE = "handle"
    REMOTE = "remote"
