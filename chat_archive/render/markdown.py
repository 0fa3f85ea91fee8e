"""Markdown output for static site generators such as Jekyll.

Pages carry YAML front matter (title, date, channel, permalink) and embed
class-based HTML rows so the archive stylesheet controls the layout. Index
links are extensionless, matching the front matter permalinks.
"""

from datetime import date
from typing import List, Sequence

from chat_archive.render.base import PageRenderer, RenderRow
from chat_archive.render.text import escape_html, normalize_newlines

ROOT_STYLESHEET_PATH = "assets/chat-archive.css"
CHANNEL_STYLESHEET_PATH = "../../assets/chat-archive.css"


def _stylesheet_link(path: str) -> str:
    return f'<link rel="stylesheet" href="{path}">\n'


def _format_message(value: str) -> str:
    normalized = normalize_newlines(value)
    if not normalized:
        return ""
    return normalized.replace("\n", "<br>\n")


def _format_time_cell(row: RenderRow) -> str:
    label = escape_html(normalize_newlines(row.time_abbrev))
    if not row.permalink or not row.permalink.strip():
        return f'<span class="archive-time">{label}</span>'
    href = escape_html(normalize_newlines(row.permalink))
    title = escape_html(normalize_newlines(row.rfc_datetime))
    return f'<a class="archive-time archive-time-link" href="{href}" title="{title}">{label}</a>'


def _render_row(row: RenderRow) -> str:
    classes = "archive-message archive-message-reply" if row.is_reply else "archive-message"
    parts = [f'<div class="{classes}">']
    if row.is_reply:
        parts.append('<span class="archive-reply-indicator" aria-hidden="true">-&gt;</span>')
    parts.append(_format_time_cell(row))
    parts.append(f'<span class="archive-user">{escape_html(normalize_newlines(row.user))}</span>')
    parts.append(f'<span class="archive-text">{_format_message(row.message)}</span>')
    if row.reactions:
        chips = "".join(
            f'<span class="archive-reaction">{escape_html(normalize_newlines(reaction))}</span>'
            for reaction in row.reactions
        )
        parts.append(f'<span class="archive-reactions">{chips}</span>')
    parts.append("</div>")
    return "".join(parts)


class MarkdownRenderer(PageRenderer):
    name = "markdown"
    extension = "md"

    def day_href(self, day: date) -> str:
        return f"{day.isoformat()}/"

    def channel_href(self, channel_name: str) -> str:
        return f"daily/{channel_name}/"

    def render_daily_page(self, channel_name: str, day: date, rows: Sequence[RenderRow]) -> str:
        lines: List[str] = [
            "---",
            f'title: "#{channel_name} {day.isoformat()}"',
            f"date: {day.isoformat()}",
            f"channel: {channel_name}",
            f"permalink: /daily/{channel_name}/{day.isoformat()}/",
            "---",
            "",
        ]
        body = "\n".join(lines) + "\n" + _stylesheet_link(CHANNEL_STYLESHEET_PATH) + "\n"
        body += '<section class="archive-log">\n'
        for row in rows:
            body += _render_row(row) + "\n"
        body += "</section>\n"
        return body

    def render_channel_index(self, channel_name: str, dates: Sequence[date]) -> str:
        lines: List[str] = [
            "---",
            f'title: "#{channel_name}"',
            f"channel: {channel_name}",
            f"permalink: /daily/{channel_name}/",
            "---",
            "",
        ]
        body = "\n".join(lines) + "\n" + _stylesheet_link(CHANNEL_STYLESHEET_PATH) + "\n"
        body += '<section class="archive-index">\n<h2>Days</h2>\n<ul class="archive-day-list">\n'
        for day in dates:
            body += f'<li><a href="{self.day_href(day)}">{day.isoformat()}</a></li>\n'
        body += "</ul>\n</section>\n"
        return body

    def render_global_index(self, channels: Sequence[str]) -> str:
        lines: List[str] = [
            "---",
            'title: "Chat Archive"',
            "permalink: /",
            "---",
            "",
        ]
        body = "\n".join(lines) + "\n" + _stylesheet_link(ROOT_STYLESHEET_PATH) + "\n"
        body += '<section class="archive-index">\n<h2>Channels</h2>\n<ul class="archive-channel-list">\n'
        for channel in channels:
            safe = escape_html(channel)
            body += f'<li><a href="{escape_html(self.channel_href(channel))}">#{safe}</a></li>\n'
        body += "</ul>\n</section>\n"
        return body
