"""Slack mrkdwn to safe HTML text.

Handles the angle-bracket tokens Slack embeds in message text (user and
channel mentions, special mentions, links) and common emoji short-codes.
Everything that is not a recognised token is HTML-escaped, so the output can
be embedded verbatim by the page renderers.
"""

import html
import re
from typing import Callable, Dict, Optional, Tuple

TOKEN_PATTERN = re.compile(r"<([^>]+)>")
EMOJI_PATTERN = re.compile(r":([a-zA-Z0-9_+\-]+):")
SUPPORTED_LINK_SCHEMES = ("https://", "http://", "mailto:")

EMOJI_MAP: Dict[str, str] = {
    "wave": "\U0001F44B",
    "thumbsup": "\U0001F44D",
    "+1": "\U0001F44D",
    "thumbsdown": "\U0001F44E",
    "-1": "\U0001F44E",
    "slightly_smiling_face": "\U0001F642",
    "smile": "\U0001F604",
    "grin": "\U0001F601",
    "wink": "\U0001F609",
    "face_with_monocle": "\U0001F9D0",
    "joy": "\U0001F602",
    "sweat_smile": "\U0001F605",
    "sob": "\U0001F62D",
    "heart": "♥️",
    "tada": "\U0001F389",
    "clap": "\U0001F44F",
    "pray": "\U0001F64F",
    "fire": "\U0001F525",
    "eyes": "\U0001F440",
    "white_check_mark": "✅",
    "open_mouth": "\U0001F62E",
    "saluting_face": "\U0001FAE1",
    "dancer": "\U0001F483",
    "raised_hands": "\U0001F64C",
}

UserResolver = Callable[[str], Optional[str]]


def escape_html(value: Optional[str]) -> str:
    """Escape ``& < > " '`` for element content and attribute values."""
    return html.escape(value or "", quote=True)


def normalize_newlines(value: Optional[str]) -> str:
    if value is None:
        return ""
    return value.replace("\r\n", "\n").replace("\r", "\n")


def resolve_emoji(code: Optional[str]) -> Optional[str]:
    if not code or not code.strip():
        return None
    return EMOJI_MAP.get(code)


def format_reaction(name: str, count: int) -> str:
    """Label for a reaction chip, e.g. ``"👍 3"`` or ``":party_parrot: 2"``."""
    emoji = resolve_emoji(name) or f":{name}:"
    return f"{emoji} {count}"


def format_slack_text(text: Optional[str], user_resolver: UserResolver) -> str:
    """Convert Slack message text to escaped HTML.

    Args:
        text: Raw Slack ``text`` field.
        user_resolver: Maps a user ID to a display name (or None).

    Returns:
        str: Escaped HTML; empty for null or blank input.
    """
    if text is None or not text.strip():
        return ""
    return _replace_tokens(text, user_resolver)


def _format_text(segment: str) -> str:
    return _replace_emoji(escape_html(segment))


def _replace_tokens(text: str, user_resolver: UserResolver) -> str:
    """Format plain segments and angle-bracket tokens; emoji only apply to plain text."""
    parts = []
    cursor = 0
    for match in TOKEN_PATTERN.finditer(text):
        parts.append(_format_text(text[cursor : match.start()]))
        parts.append(_format_token(match.group(1), user_resolver))
        cursor = match.end()
    parts.append(_format_text(text[cursor:]))
    return "".join(parts)


def _split_label(token: str) -> Tuple[str, Optional[str]]:
    value, sep, label = token.partition("|")
    return value, (label if sep else None)


def _format_token(token: str, user_resolver: UserResolver) -> str:
    if token.startswith("@"):
        user_id, label = _split_label(token[1:])
        if not label or not label.strip():
            label = user_resolver(user_id)
        if not label or not label.strip():
            label = user_id
        return escape_html(label if label.startswith("@") else f"@{label}")
    if token.startswith("#"):
        channel_id, label = _split_label(token[1:])
        label = label or channel_id
        return escape_html(label if label.startswith("#") else f"#{label}")
    if token.startswith("!"):
        special, label = _split_label(token[1:])
        label = label or special
        return escape_html(label if label.startswith("@") else f"@{label}")
    return _format_link(token)


def _format_link(token: str) -> str:
    url, label = _split_label(token)
    url = url.strip()
    if not label or not label.strip():
        label = url
    if not url.lower().startswith(SUPPORTED_LINK_SCHEMES):
        return escape_html(label)
    return f'<a class="archive-link" href="{escape_html(url)}">{escape_html(label)}</a>'


def _replace_emoji(text: str) -> str:
    return EMOJI_PATTERN.sub(lambda m: EMOJI_MAP.get(m.group(1), m.group(0)), text)
