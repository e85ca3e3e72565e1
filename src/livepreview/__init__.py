"""livepreview - in-process live preview server for HTML and CSS."""
