"""Standalone HTML output.

Every page is a complete document. Thread replies that follow a message are
wrapped in an ``archive-thread`` section, and Slack's lightweight markup
(``*bold*``, ``_italic_``, ``~strike~``, bullet and numbered lists) is turned
into HTML. Links point at the generated files, so the tree can be browsed
straight from disk.
"""

import re
from datetime import date
from typing import List, Sequence

from chat_archive.render.base import PageRenderer, RenderRow
from chat_archive.render.text import escape_html, normalize_newlines

ROOT_STYLESHEET_PATH = "assets/chat-archive.css"
CHANNEL_STYLESHEET_PATH = "../../assets/chat-archive.css"

UNORDERED_LIST_PATTERN = re.compile(r"^\s*(?:[-*]|•)\s+(.+)$")
ORDERED_LIST_PATTERN = re.compile(r"^\s*\d+\.\s+(.+)$")
ANCHOR_PATTERN = re.compile(r"(<a\b[^>]*>.*?</a>)", re.IGNORECASE)
INLINE_PATTERNS = (
    (re.compile(r"(?<!\w)\*(\S(?:.*?\S)?)\*(?!\w)"), "strong"),
    (re.compile(r"(?<!\w)_(\S(?:.*?\S)?)_(?!\w)"), "em"),
    (re.compile(r"(?<!\w)~(\S(?:.*?\S)?)~(?!\w)"), "del"),
)

_LIST_OPEN = {"ul": '<ul class="archive-list">\n', "ol": '<ol class="archive-list archive-list-numbered">\n'}


def _apply_inline_markup_to_text(text: str) -> str:
    for pattern, tag in INLINE_PATTERNS:
        text = pattern.sub(lambda m, tag=tag: f"<{tag}>{m.group(1)}</{tag}>", text)
    return text


def apply_inline_markup(line: str) -> str:
    """Apply emphasis markup everywhere except inside existing anchors."""
    parts: List[str] = []
    cursor = 0
    for match in ANCHOR_PATTERN.finditer(line):
        parts.append(_apply_inline_markup_to_text(line[cursor : match.start()]))
        parts.append(match.group(1))
        cursor = match.end()
    parts.append(_apply_inline_markup_to_text(line[cursor:]))
    return "".join(parts)


def format_message(value: str) -> str:
    """Render already-escaped message text with line breaks, lists and emphasis."""
    normalized = normalize_newlines(value)
    if not normalized:
        return ""

    lines = normalized.split("\n")
    out: List[str] = []
    open_list = None
    for index, line in enumerate(lines):
        unordered = UNORDERED_LIST_PATTERN.match(line)
        ordered = None if unordered else ORDERED_LIST_PATTERN.match(line)
        match = unordered or ordered
        if match:
            kind = "ul" if unordered else "ol"
            if open_list != kind:
                if open_list:
                    out.append(f"</{open_list}>\n")
                out.append(_LIST_OPEN[kind])
                open_list = kind
            out.append(f"<li>{apply_inline_markup(match.group(1).strip())}</li>\n")
            continue

        if open_list:
            out.append(f"</{open_list}>\n")
            open_list = None

        if not line.strip():
            out.append("<br>\n")
            continue

        out.append(f'<span class="archive-line">{apply_inline_markup(line)}</span>\n')
        if index < len(lines) - 1:
            out.append("<br>")

    if open_list:
        out.append(f"</{open_list}>\n")
    return "".join(out)


def _format_time_cell(row: RenderRow) -> str:
    label = escape_html(normalize_newlines(row.time_abbrev))
    if not row.permalink or not row.permalink.strip():
        return f'<span class="archive-time">{label}</span>'
    href = escape_html(normalize_newlines(row.permalink))
    title = escape_html(normalize_newlines(row.rfc_datetime))
    return f'<a class="archive-time archive-time-link" href="{href}" title="{title}">{label}</a>'


def _render_row(row: RenderRow) -> str:
    classes = "archive-message archive-message-reply" if row.is_reply else "archive-message"
    parts = [f'<article class="{classes}">\n', '<div class="archive-meta">\n']
    if row.is_reply:
        parts.append('<span class="archive-reply-indicator" aria-hidden="true">&rarr;</span>\n')
        parts.append('<span class="archive-reply-label">reply</span>\n')
    parts.append(_format_time_cell(row))
    parts.append(f'<span class="archive-user">{escape_html(normalize_newlines(row.user))}</span>\n')
    parts.append("</div>\n")
    parts.append(f'<div class="archive-text">\n{format_message(row.message)}</div>\n')
    if row.reactions:
        parts.append('<div class="archive-reactions">')
        for reaction in row.reactions:
            parts.append(f'<span class="archive-reaction">{escape_html(normalize_newlines(reaction))}</span>\n')
        parts.append("</div>\n")
    parts.append("</article>")
    return "".join(parts)


def _render_document(title: str, stylesheet_path: str, body: str) -> str:
    return (
        "<!doctype html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="utf-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"  <title>{escape_html(normalize_newlines(title))}</title>\n"
        f'  <link rel="stylesheet" href="{stylesheet_path}">\n'
        "</head>\n"
        "<body>\n"
        '  <main class="archive-page">\n'
        f"{body}\n"
        "  </main>\n"
        "</body>\n"
        "</html>\n"
    )


class HtmlRenderer(PageRenderer):
    name = "html"
    extension = "html"

    def day_href(self, day: date) -> str:
        return f"{day.isoformat()}.html"

    def channel_href(self, channel_name: str) -> str:
        return f"daily/{channel_name}/index.html"

    def render_daily_page(self, channel_name: str, day: date, rows: Sequence[RenderRow]) -> str:
        safe_channel = escape_html(normalize_newlines(channel_name))
        safe_date = escape_html(day.isoformat())
        body = [
            '<header class="archive-header">\n',
            '<p class="archive-breadcrumb">',
            '<a href="../../index.html">Channels</a> / ',
            f'<a href="index.html">#{safe_channel}</a> / {safe_date}</p>',
            f"<h1>#{safe_channel} {safe_date}</h1>",
            "</header>",
            '<section class="archive-log">',
        ]
        in_thread = False
        for row in rows:
            if row.nested and not in_thread:
                body.append('<section class="archive-thread" aria-label="Thread replies">\n')
                in_thread = True
            elif not row.nested and in_thread:
                body.append("</section>")
                in_thread = False
            body.append(_render_row(row))
        if in_thread:
            body.append("</section>")
        body.append("</section>")
        return _render_document(f"#{channel_name} {day.isoformat()}", CHANNEL_STYLESHEET_PATH, "".join(body))

    def render_channel_index(self, channel_name: str, dates: Sequence[date]) -> str:
        safe_channel = escape_html(normalize_newlines(channel_name))
        body = [
            '<header class="archive-header">\n',
            '<p class="archive-breadcrumb">\n',
            f'<a href="../../index.html">Channels</a> / #{safe_channel}</p>\n',
            f"<h1>#{safe_channel}</h1>\n",
            "</header>\n",
            '<section class="archive-index">\n<h2>Days</h2>\n<ul class="archive-day-list">\n',
        ]
        for day in dates:
            body.append(f'<li><a href="{escape_html(self.day_href(day))}">{escape_html(day.isoformat())}</a></li>\n')
        body.append("</ul>\n</section>")
        return _render_document(f"#{channel_name}", CHANNEL_STYLESHEET_PATH, "".join(body))

    def render_global_index(self, channels: Sequence[str]) -> str:
        body = [
            '<header class="archive-header">\n<h1>Chat Archive</h1>\n</header>\n',
            '<section class="archive-index">\n<h2>Channels</h2>\n<ul class="archive-channel-list">\n',
        ]
        for channel in channels:
            safe_channel = escape_html(normalize_newlines(channel))
            body.append(f'<li><a href="{escape_html(self.channel_href(channel))}">#{safe_channel}</a></li>\n')
        body.append("</ul>\n</section>")
        return _render_document("Chat Archive", ROOT_STYLESHEET_PATH, "".join(body))
