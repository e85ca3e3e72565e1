"""Helpers shared by the HTML and CSS rewriters."""

import posixpath
import re
from collections.abc import Awaitable, Callable

from livepreview.core.content import is_relative_url
from livepreview.core.files import normalize
from livepreview.core.types import ProjectPath

# mailto:, javascript:, tel: and friends carry no "//" but are not paths either
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def resolve_reference(base: ProjectPath, url: str) -> ProjectPath | None:
    """Resolve a reference found in a document against the document's path.

    Args:
        base: Project path of the referencing document
        url: Reference as written in the document

    Returns:
        Project path of the referenced file, or None for anything that is not
        a relative file reference (remote URLs, handles, fragments, schemes)
    """
    url = url.strip()
    if not is_relative_url(url) or _SCHEME_RE.match(url) or url.startswith(("#", "?")):
        return None

    target = url.split("#", 1)[0].split("?", 1)[0]
    if not target:
        return None

    if not target.startswith("/"):
        target = posixpath.join(posixpath.dirname(base), target)
    return normalize(target)


async def substitute(
    pattern: re.Pattern[str],
    text: str,
    replace: Callable[[re.Match[str]], Awaitable[str]],
) -> str:
    """Like ``pattern.sub()`` with a coroutine replacement, applied in order."""
    parts: list[str] = []
    last = 0
    for match in pattern.finditer(text):
        parts.append(text[last : match.start()])
        parts.append(await replace(match))
        last = match.end()
    parts.append(text[last:])
    return "".join(parts)
