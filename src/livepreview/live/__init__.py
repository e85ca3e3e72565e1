"""Live reload for the preview pane."""

from livepreview.live.reload import LiveReloadManager

__all__ = ["LiveReloadManager"]
