"""Incremental archive run.

One run:

1. validates configuration and the Slack token (``auth.test``);
2. resolves the channel allow-list against the live channel list;
3. for each channel, fetches history from the fetch origin (window start or
   an older cursor), reconciles threads, groups by UTC day, renders each day
   and writes it only if it changed;
4. saves the advanced cursors;
5. re-renders channel and global indexes (and robots.txt / sitemap.xml when a
   site URL is configured) from what is on disk.

Failures are handled by scope: configuration, auth and channel resolution
problems abort the run; a channel whose history cannot be fetched is skipped;
lookups for replies, permalinks and user names degrade to defaults; write
errors are logged and the run continues.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from email.utils import format_datetime
from pathlib import Path
from time import perf_counter
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from chat_archive.metrics.metrics import PAGES_WRITTEN, USER_CACHE_HITS, USER_CACHE_MISSES
from chat_archive.models.config import CHANNELS_ALLOWLIST_ENV, SLACK_TOKEN_ENV, ArchiveConfig
from chat_archive.models.slack import Channel, Message
from chat_archive.render import index as index_listing
from chat_archive.render.base import PageRenderer, RenderRow
from chat_archive.render.formats import get_renderer
from chat_archive.render.site import render_robots_txt, render_sitemap_xml
from chat_archive.render.text import format_reaction, format_slack_text
from chat_archive.sources import channel_resolver, timestamps
from chat_archive.sources.cursor_store import CursorState, CursorStore
from chat_archive.sources.slack_client import ApiFailure, SlackApiClient
from chat_archive.sources.threads import ThreadEntry, ThreadReconciler, group_by_date, sort_messages
from chat_archive.sources.users import UNKNOWN_USER, display_name
from chat_archive.utils.files import write_if_changed

logger = logging.getLogger(__name__)

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class ArchiveError(Exception):
    """Fatal error: the run stops before archiving anything."""


class ConfigurationError(ArchiveError):
    pass


class AuthenticationError(ArchiveError):
    pass


class ChannelResolutionError(ArchiveError):
    pass


@dataclass
class RunCaches:
    """Lookups memoised for the duration of one run.

    Parameters:
        permalinks: ``"<channel>:<ts>"`` -> permalink (None when unavailable).
        users: user ID -> display name (raw ID when the lookup failed).
        thread_replies: ``"<channel>:<thread_ts>"`` -> sorted replies.
    """

    permalinks: Dict[str, Optional[str]] = field(default_factory=dict)
    users: Dict[str, str] = field(default_factory=dict)
    thread_replies: Dict[str, List[Message]] = field(default_factory=dict)


@dataclass
class SyncResult:
    """Summary of a run."""

    changed: bool = False
    synced_channels: List[str] = field(default_factory=list)
    failed_channels: List[str] = field(default_factory=list)
    missing_channels: List[str] = field(default_factory=list)
    pages_written: int = 0


def compute_window_start(now: datetime, lookback_days: int) -> datetime:
    return now - timedelta(days=lookback_days)


def determine_oldest_ts(window_start: datetime, window_oldest: str, cursor_ts: Optional[str]) -> str:
    """Pick the fetch origin for a channel.

    A cursor older than the window start is used as is, so an overdue run
    does not skip messages; otherwise the window start bounds the re-fetch.
    """
    if cursor_ts is None or not cursor_ts.strip():
        return window_oldest
    if timestamps.to_datetime(cursor_ts) < window_start:
        return cursor_ts
    return window_oldest


def advance_cursor(current: Optional[str], messages: Sequence[Message]) -> Optional[str]:
    """Largest ``ts`` among ``current`` and ``messages``; never moves backward."""
    return timestamps.latest(current, (m.ts for m in messages))


def format_time_abbrev(moment: datetime) -> str:
    """``"Thu 09:15"`` in UTC, independent of the process locale."""
    moment = moment.astimezone(timezone.utc)
    return f"{_WEEKDAYS[moment.weekday()]} {moment:%H:%M}"


def format_rfc_datetime(moment: datetime) -> str:
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


class ArchiveSync:
    """Drives one archive run.

    Args:
        config: Run configuration.
        client: Slack client; built from ``config`` when omitted.
        cursor_store: Cursor persistence; defaults to ``config.state_dir``.
        renderer: Output format; defaults to ``config.output_format``.
        now: Clock returning an aware UTC datetime.
    """

    def __init__(
        self,
        config: ArchiveConfig,
        client: Optional[SlackApiClient] = None,
        cursor_store: Optional[CursorStore] = None,
        renderer: Optional[PageRenderer] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config
        self.client = client
        self.cursor_store = cursor_store or CursorStore(config.state_dir)
        self.renderer = renderer or get_renderer(config.output_format)
        self.now = now
        self.output_dir = Path(config.output_dir)
        self.daily_root = self.output_dir / "daily"

    # --------- Run ----------
    def run(self) -> SyncResult:
        """Execute a full run.

        Raises:
            ConfigurationError: Missing token or empty allow-list.
            AuthenticationError: ``auth.test`` failed.
            ChannelResolutionError: Channels could not be listed or none matched.
        """
        op_start = perf_counter()
        channels, missing = self.preflight()
        client = self._get_client()

        result = SyncResult(missing_channels=missing)
        window_start = compute_window_start(self.now(), self.config.lookback_days)
        window_oldest = timestamps.from_datetime(window_start)

        loaded = self.cursor_store.load()
        cursors = loaded.copy()
        caches = RunCaches()

        for channel in channels:
            if self._sync_channel(client, channel, cursors, caches, window_start, window_oldest, result):
                result.synced_channels.append(channel.name)
            else:
                result.failed_channels.append(channel.name)

        if cursors.channels != loaded.channels:
            try:
                self.cursor_store.save(cursors)
                result.changed = True
            except OSError as e:
                logger.warning(f"Failed to write cursor state to {self.cursor_store.path}: {e}")

        written = self.render_indexes()
        result.pages_written += written
        result.changed = result.changed or result.pages_written > 0

        if not result.changed:
            logger.info("No changes detected. Archive output unchanged.")
        logger.info(
            f"Archive run done: channels={len(result.synced_channels)} failed={len(result.failed_channels)} "
            f"pages_written={result.pages_written} elapsed={perf_counter() - op_start:.3f}s"
        )
        return result

    def preflight(self) -> Tuple[List[Channel], List[str]]:
        """Validate settings, check the token and resolve the allow-list.

        Returns:
            Tuple[List[Channel], List[str]]: Resolved channels and allow-list
            entries that matched nothing.
        """
        self._validate_config()
        client = self._get_client()
        self._check_auth(client)
        return self._resolve_channels(client)

    def _validate_config(self) -> None:
        if not self.config.slack_token:
            raise ConfigurationError(f"Missing/invalid required setting: {SLACK_TOKEN_ENV}")
        if not self.config.channel_allowlist:
            raise ConfigurationError(f"Missing/invalid required setting: {CHANNELS_ALLOWLIST_ENV}")
        logger.info(f"Using state dir [{self.config.state_dir}]")
        logger.info(f"Using output dir [{self.config.output_dir}]")
        logger.info(f"Loaded config for {len(self.config.channel_allowlist)} channel(s).")
        logger.info(f"Will fetch messages for the past {self.config.lookback_days} day(s).")

    def _get_client(self) -> SlackApiClient:
        if self.client is None:
            self.client = SlackApiClient(self.config.slack_token, timeout=self.config.request_timeout_seconds)
        return self.client

    def _check_auth(self, client: SlackApiClient) -> None:
        auth = client.auth_test()
        if isinstance(auth, ApiFailure):
            raise AuthenticationError(f"Slack auth.test not ok: {auth.error}")
        logger.info(f"Slack auth.test succeeded for team {auth.data.team}.")

    def _resolve_channels(self, client: SlackApiClient) -> Tuple[List[Channel], List[str]]:
        listing = client.list_public_channels()
        if isinstance(listing, ApiFailure):
            raise ChannelResolutionError(f"Slack conversations.list not ok: {listing.error}")
        resolution = channel_resolver.resolve(self.config.channel_allowlist, listing.data)
        if resolution.missing:
            logger.warning(f"Allowlisted channel(s) not found: {', '.join(resolution.missing)}")
        if not resolution.resolved:
            raise ChannelResolutionError("No allowlisted channels resolved. Skipping archive update.")
        logger.info(f"Resolved {len(resolution.resolved)} channel(s).")
        return resolution.resolved, resolution.missing

    # --------- Per channel ----------
    def _sync_channel(
        self,
        client: SlackApiClient,
        channel: Channel,
        cursors: CursorState,
        caches: RunCaches,
        window_start: datetime,
        window_oldest: str,
        result: SyncResult,
    ) -> bool:
        """Archive one channel; returns False if it had to be skipped."""
        oldest = determine_oldest_ts(window_start, window_oldest, cursors.get(channel.id))
        logger.debug(f"Fetching #{channel.name} ({channel.id}) from oldest={oldest}")
        history = client.list_channel_messages(channel.id, oldest)
        if isinstance(history, ApiFailure):
            logger.error(f"Slack conversations.history not ok for channel {channel.name}: {history.error}")
            return False

        messages = sort_messages(history.data)
        logger.info(f"Fetched {len(messages)} message(s) for #{channel.name}")
        reconciler = ThreadReconciler(client, channel.id, messages, caches.thread_replies)

        write_failed = False
        for day, day_messages in group_by_date(messages).items():
            entries = reconciler.build_entries(day_messages)
            rows = self.to_rows(entries, channel.id, caches)
            page = self.renderer.render_daily_page(channel.name, day, rows)
            page_path = self.output_dir / self.renderer.daily_page_path(channel.name, day)
            try:
                if write_if_changed(page_path, page):
                    result.pages_written += 1
                    PAGES_WRITTEN.labels(kind="daily").inc()
                    logger.info(f"Updated {page_path}")
            except OSError as e:
                write_failed = True
                logger.error(f"Failed to write archive for channel {channel.name} on {day}: {e}")

        if write_failed:
            logger.warning(f"Keeping cursor for #{channel.name} unchanged because some pages failed to write")
        else:
            cursors.advance(channel.id, advance_cursor(cursors.get(channel.id), messages))
        return True

    # --------- Rows ----------
    def to_rows(self, entries: Sequence[ThreadEntry], channel_id: str, caches: RunCaches) -> List[RenderRow]:
        """Flatten entries into rows: each parent followed by its replies."""
        rows: List[RenderRow] = []
        for entry in entries:
            rows.append(self.to_row(entry.message, channel_id, caches))
            for reply in entry.replies:
                rows.append(self.to_row(reply, channel_id, caches, nested=True))
        return rows

    def to_row(self, message: Message, channel_id: str, caches: RunCaches, nested: bool = False) -> RenderRow:
        moment = timestamps.to_datetime(message.ts)
        text = format_slack_text(message.text, lambda user_id: self.resolve_user_display_name(user_id, caches))
        return RenderRow(
            is_reply=message.is_reply,
            time_abbrev=format_time_abbrev(moment),
            rfc_datetime=format_rfc_datetime(moment),
            user=self.resolve_author(message, caches),
            message=text,
            permalink=self.resolve_permalink(channel_id, message.ts, caches),
            reactions=[format_reaction(r.name, r.count) for r in message.reactions],
            nested=nested,
        )

    def resolve_author(self, message: Message, caches: RunCaches) -> str:
        if message.user and message.user.strip():
            return self.resolve_user_display_name(message.user, caches)
        if message.bot_id and message.bot_id.strip():
            return f"bot:{message.bot_id}"
        return UNKNOWN_USER

    def resolve_user_display_name(self, user_id: str, caches: RunCaches) -> str:
        """Display name for ``user_id``; the raw ID when ``users.info`` fails."""
        cached = caches.users.get(user_id)
        if cached is not None:
            USER_CACHE_HITS.inc()
            return cached
        USER_CACHE_MISSES.inc()
        result = self._get_client().get_user_info(user_id)
        if isinstance(result, ApiFailure):
            logger.warning(f"Slack users.info not ok for {user_id}: {result.error}")
            name = user_id
        else:
            name = display_name(result.data)
        caches.users[user_id] = name
        return name

    def resolve_permalink(self, channel_id: str, message_ts: Optional[str], caches: RunCaches) -> Optional[str]:
        if not message_ts or not message_ts.strip():
            return None
        cache_key = f"{channel_id}:{message_ts}"
        if cache_key in caches.permalinks:
            return caches.permalinks[cache_key]
        result = self._get_client().get_permalink(channel_id, message_ts)
        if isinstance(result, ApiFailure):
            logger.warning(f"Slack chat.getPermalink not ok for {cache_key}: {result.error}")
            permalink = None
        else:
            permalink = result.data
        caches.permalinks[cache_key] = permalink
        return permalink

    # --------- Indexes ----------
    def render_indexes(self) -> int:
        """Re-render indexes and site metadata from disk.

        Returns:
            int: Number of files that changed. Errors are logged, not raised.
        """
        written = 0
        ext = self.renderer.extension
        try:
            channels = index_listing.list_channels(self.daily_root)
            dates_by_channel: Dict[str, List[date]] = {}
            for channel in channels:
                dates = index_listing.list_dates(self.daily_root / channel, ext)
                dates_by_channel[channel] = dates
                index_path = self.output_dir / self.renderer.channel_index_path(channel)
                if write_if_changed(index_path, self.renderer.render_channel_index(channel, dates)):
                    written += 1
                    PAGES_WRITTEN.labels(kind="channel_index").inc()
            global_path = self.output_dir / self.renderer.global_index_path()
            if write_if_changed(global_path, self.renderer.render_global_index(channels)):
                written += 1
                PAGES_WRITTEN.labels(kind="global_index").inc()
            written += self._render_site_metadata(dates_by_channel)
        except OSError as e:
            logger.warning(f"Failed to write index files: {e}")
        return written

    def _render_site_metadata(self, dates_by_channel: Dict[str, List[date]]) -> int:
        base_url = self.config.site_base_url
        if not base_url:
            return 0
        written = 0
        if write_if_changed(self.output_dir / "robots.txt", render_robots_txt(base_url)):
            written += 1
            PAGES_WRITTEN.labels(kind="site_metadata").inc()
        sitemap = render_sitemap_xml(base_url, dates_by_channel, self.renderer)
        if write_if_changed(self.output_dir / "sitemap.xml", sitemap):
            written += 1
            PAGES_WRITTEN.labels(kind="site_metadata").inc()
        return written
