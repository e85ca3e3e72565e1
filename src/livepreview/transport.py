"""Transport script for preview pages.

The script lets a previewed page talk to the pane hosting it: it announces
itself to the parent frame, reloads on request, and follows the live reload
WebSocket when the page was loaded over HTTP.
"""

import json
import re

_HEAD_CLOSE_RE = re.compile(r"<\s*/\s*head\s*>", re.IGNORECASE)
_HTML_CLOSE_RE = re.compile(r"<\s*/\s*html\s*>", re.IGNORECASE)

LIVE_RELOAD_ENDPOINT = "/ws/live-reload"
HANDLE_ROUTE = "/blob/"
PREVIEW_ROUTE = "/preview"

_SCRIPT_TEMPLATE = """<script data-livepreview-transport>
(function () {
  var path = %(path)s;
  function send(message) {
    if (window.parent && window.parent !== window) {
      window.parent.postMessage(JSON.stringify(message), "*");
    }
  }
  function handle(data) {
    var message;
    try { message = JSON.parse(data); } catch (e) { return; }
    if (!message || message.type !== "reload") { return; }
    if (window.location.pathname.indexOf(%(handle_route)s) === 0) {
      // Handles are immutable, ask for a freshly served document instead
      window.location.assign(%(preview_route)s + path);
    } else {
      window.location.reload();
    }
  }
  window.addEventListener("message", function (event) { handle(event.data); });
  if (/^https?:$/.test(window.location.protocol) && window.WebSocket) {
    var scheme = window.location.protocol === "https:" ? "wss://" : "ws://";
    var socket = new WebSocket(scheme + window.location.host + %(endpoint)s);
    socket.onopen = function () { socket.send(JSON.stringify({type: "ready", path: path})); };
    socket.onmessage = function (event) { handle(event.data); };
  }
  send({type: "ready", path: path});
})();
</script>"""


def _js_string(value: str) -> str:
    # Keep "</script>" in a path from closing the element early
    return json.dumps(value).replace("</", "<\\/")


def get_remote_script(path: str) -> str:
    """Build the transport script tag for a previewed document.

    Args:
        path: Project path of the document the script is embedded in

    Returns:
        Script element markup
    """
    return _SCRIPT_TEMPLATE % {
        "path": _js_string(path),
        "endpoint": _js_string(LIVE_RELOAD_ENDPOINT),
        "handle_route": _js_string(HANDLE_ROUTE),
        "preview_route": _js_string(PREVIEW_ROUTE),
    }


def inject_script(content: str, script: str) -> str:
    """Insert a script into HTML at a single insertion point.

    Tries just before the closing head tag, then before the closing html tag,
    and otherwise appends to the end. Whitespace inside the closing tags is
    tolerated. This is a textual heuristic and may pick an odd spot in
    malformed documents.

    Args:
        content: HTML text
        script: Markup to insert

    Returns:
        HTML text with the script inserted once
    """
    for pattern in (_HEAD_CLOSE_RE, _HTML_CLOSE_RE):
        match = pattern.search(content)
        if match is not None:
            return content[: match.start()] + script + content[match.start() :]
    return content + script
