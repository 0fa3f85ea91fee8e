"""Page renderer interface shared by the output formats."""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class RenderRow:
    """One rendered message.

    Parameters:
        is_reply: Whether the message is a thread reply.
        time_abbrev: Short UTC label, e.g. ``"Thu 09:15"``.
        rfc_datetime: Full UTC timestamp, e.g. ``"Thu, 12 Feb 2026 09:15:00 GMT"``.
        user: Author display string.
        message: Already formatted and escaped message HTML.
        permalink: Link back to Slack, if known.
        reactions: Reaction labels such as ``"👍 2"``.
        nested: Reply rendered under its parent; orphan replies are not nested.
    """

    is_reply: bool
    time_abbrev: str
    rfc_datetime: str
    user: str
    message: str
    permalink: Optional[str] = None
    reactions: List[str] = field(default_factory=list)
    nested: bool = False


class PageRenderer:
    """Base class for output formats.

    Renderers are pure: the same arguments always produce the same string,
    which is what lets the writer skip unchanged pages.
    """

    name: str = ""
    extension: str = ""

    def daily_page_path(self, channel_name: str, day: date) -> str:
        """Path of a daily page, relative to the output directory."""
        return f"daily/{channel_name}/{day.isoformat()}.{self.extension}"

    def channel_index_path(self, channel_name: str) -> str:
        return f"daily/{channel_name}/index.{self.extension}"

    def global_index_path(self) -> str:
        return f"index.{self.extension}"

    def day_href(self, day: date) -> str:
        """Link from a channel index to one of its days."""
        raise NotImplementedError

    def channel_href(self, channel_name: str) -> str:
        """Link from the global index to a channel index."""
        raise NotImplementedError

    def render_daily_page(self, channel_name: str, day: date, rows: Sequence[RenderRow]) -> str:
        raise NotImplementedError

    def render_channel_index(self, channel_name: str, dates: Sequence[date]) -> str:
        raise NotImplementedError

    def render_global_index(self, channels: Sequence[str]) -> str:
        raise NotImplementedError
