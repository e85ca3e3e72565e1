"""Exceptions raised while serving previews.

Disk failures are not wrapped: ``OSError`` (``FileNotFoundError`` and friends)
propagates from the disk layer unchanged. Text that fails to decode is
reported as ``DecodeError``, a member of the same family.
"""


class PreviewError(Exception):
    """Base class for preview serving errors."""


class UnexpectedKindError(PreviewError, ValueError):
    """A document that is neither HTML nor CSS reached the serving pipeline."""

    def __init__(self, path: str, kind: str) -> None:
        super().__init__(f"Expected an HTML or CSS document, got {kind}: {path}")
        self.path = path
        self.kind = kind


class RewriteError(PreviewError):
    """The HTML or CSS rewrite pipeline failed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to rewrite {path}: {reason}")
        self.path = path
        self.reason = reason


class ProbeError(PreviewError):
    """Capability detection failed; no serving strategy is available."""


class UnknownHandleError(PreviewError, LookupError):
    """A handle or URL does not map to any project path."""

    def __init__(self, url: str) -> None:
        super().__init__(f"No project path for URL: {url}")
        self.url = url


class DecodeError(OSError):
    """A project file read as text is not valid UTF-8.

    Part of the read error family, so callers handling ``OSError`` see it too.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Not valid UTF-8: {path} ({reason})")
        self.path = path
        self.reason = reason
