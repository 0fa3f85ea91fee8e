"""robots.txt and sitemap.xml for the published archive."""

from datetime import date
from typing import Dict, List, Optional, Sequence
from xml.sax.saxutils import escape

from chat_archive.render.base import PageRenderer


def render_robots_txt(site_base_url: Optional[str]) -> str:
    lines = ["User-agent: *", "Allow: /"]
    if site_base_url and site_base_url.strip():
        lines.append(f"Sitemap: {site_base_url}/sitemap.xml")
    return "\n".join(lines) + "\n"


def _join_site_path(site_base_url: str, path: str) -> str:
    if not path:
        return f"{site_base_url}/"
    return f"{site_base_url}/{path}"


def sitemap_paths(renderer: PageRenderer, dates_by_channel: Dict[str, Sequence[date]]) -> List[str]:
    """Site-relative paths of the root, each channel index and each daily page."""
    paths = [""]
    for channel, dates in dates_by_channel.items():
        channel_path = renderer.channel_href(channel)
        paths.append(channel_path)
        base = channel_path.rsplit("/", 1)[0]
        for day in dates:
            paths.append(f"{base}/{renderer.day_href(day)}")
    return paths


def render_sitemap_xml(
    site_base_url: str, dates_by_channel: Dict[str, Sequence[date]], renderer: PageRenderer
) -> str:
    entries = [
        f"  <url><loc>{escape(_join_site_path(site_base_url, path))}</loc></url>\n"
        for path in sitemap_paths(renderer, dates_by_channel)
    ]
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n' + "".join(entries) + "</urlset>\n"
    )
