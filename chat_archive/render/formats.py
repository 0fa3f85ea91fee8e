"""Output format registry."""

from typing import Dict, Type

from chat_archive.render.base import PageRenderer
from chat_archive.render.html import HtmlRenderer
from chat_archive.render.markdown import MarkdownRenderer

RENDERERS: Dict[str, Type[PageRenderer]] = {
    MarkdownRenderer.name: MarkdownRenderer,
    HtmlRenderer.name: HtmlRenderer,
}


def get_renderer(name: str) -> PageRenderer:
    """Return a renderer instance for ``name`` ("markdown" or "html")."""
    try:
        return RENDERERS[name]()
    except KeyError:
        raise ValueError(f"Unknown output format: {name!r}. Expected one of {sorted(RENDERERS)}") from None
