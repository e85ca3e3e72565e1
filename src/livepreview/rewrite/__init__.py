"""Default rewrite pipeline for previewed HTML and CSS."""

from livepreview.rewrite.css import StylesheetRewriter
from livepreview.rewrite.html import MarkupRewriter

__all__ = ["MarkupRewriter", "StylesheetRewriter"]
