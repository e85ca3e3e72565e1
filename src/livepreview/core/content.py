"""Content classification by file extension and URL shape.

Decides which documents need rewriting and which MIME type a generated
handle is registered with.
"""

import posixpath
import re

from livepreview.core.types import ContentKind, URLKind

HANDLE_SCHEME = "blob:"

DEFAULT_MIME = "application/octet-stream"

_KINDS: dict[str, ContentKind] = {
    "html": ContentKind.HTML,
    "htm": ContentKind.HTML,
    "htmls": ContentKind.HTML,
    "htx": ContentKind.HTML,
    "xhtml": ContentKind.HTML,
    "css": ContentKind.CSS,
    "png": ContentKind.IMAGE,
    "jpg": ContentKind.IMAGE,
    "jpe": ContentKind.IMAGE,
    "jpeg": ContentKind.IMAGE,
    "gif": ContentKind.IMAGE,
    "bmp": ContentKind.IMAGE,
    "ico": ContentKind.IMAGE,
    "svg": ContentKind.IMAGE,
    "webp": ContentKind.IMAGE,
    "md": ContentKind.MARKDOWN,
    "markdown": ContentKind.MARKDOWN,
}

_MIME_TYPES: dict[str, str] = {
    # Markdown is previewed as rendered HTML
    "html": "text/html",
    "htmls": "text/html",
    "htm": "text/html",
    "htx": "text/html",
    "xhtml": "text/html",
    "md": "text/html",
    "markdown": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "txt": "text/plain",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpe": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    # Extensions usable for audio and video resolve to video
    "mp4": "video/mp4",
    "mpeg": "video/mpeg",
    "ogg": "video/ogg",
    "ogv": "video/ogg",
    "mov": "video/quicktime",
    "qt": "video/quicktime",
    "webm": "video/webm",
    "avi": "video/avi",
    "divx": "video/avi",
    "mpa": "audio/mpeg",
    "mp3": "audio/mpeg",
    "wav": "audio/vnd.wave",
    # Web fonts
    "eot": "application/vnd.ms-fontobject",
    "otf": "application/x-font-opentype",
    "ttf": "application/x-font-ttf",
    "woff": "application/font-woff",
    "woff2": "font/woff2",
}

_DATA_URL_RE = re.compile(r"^\s*data:", re.IGNORECASE)


def _normalize_ext(ext: str) -> str:
    return ext.removeprefix(".").lower()


def kind_of(ext: str) -> ContentKind:
    """Map a file extension to its content kind.

    Args:
        ext: Extension with or without the leading dot, any case

    Returns:
        ContentKind, OTHER for unknown extensions
    """
    return _KINDS.get(_normalize_ext(ext), ContentKind.OTHER)


def kind_of_path(path: str) -> ContentKind:
    """Map a path to the content kind of its extension."""
    return kind_of(posixpath.splitext(path)[1])


def mime_of(ext: str) -> str:
    """Map a file extension to a MIME type.

    Args:
        ext: Extension with or without the leading dot, any case

    Returns:
        MIME type, application/octet-stream for unknown extensions
    """
    return _MIME_TYPES.get(_normalize_ext(ext), DEFAULT_MIME)


def mime_of_path(path: str) -> str:
    return mime_of(posixpath.splitext(path)[1])


def is_textual(mime: str) -> bool:
    """Whether the MIME type's top-level type is text."""
    return mime.split("/", 1)[0].strip().lower() == "text"


def is_utf8_encoded(ext: str) -> bool:
    """Whether files with this extension can be read as UTF-8 text."""
    return is_textual(mime_of(ext))


def needs_rewriting(ext: str) -> bool:
    return kind_of(ext) in (ContentKind.HTML, ContentKind.CSS)


def classify_url(url: str | None) -> URLKind | None:
    """Classify a URL string.

    Handles are recognized by their reserved prefix before anything else, so
    "blob:http://host/id" is a handle rather than a remote URL.

    Args:
        url: URL as found in a document

    Returns:
        URLKind, or None for empty input (which is never relative)
    """
    if not url:
        return None
    if url.startswith(HANDLE_SCHEME):
        return URLKind.HANDLE
    if "//" in url or _DATA_URL_RE.match(url):
        return URLKind.REMOTE
    return URLKind.RELATIVE


def is_relative_url(url: str | None) -> bool:
    return classify_url(url) is URLKind.RELATIVE


def is_handle_url(url: str | None) -> bool:
    return classify_url(url) is URLKind.HANDLE
