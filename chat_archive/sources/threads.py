"""Thread reconciliation and day bucketing for a channel's fetched messages.

Slack returns thread roots in channel history but replies only sometimes
(e.g. broadcasts), and replies may belong to roots outside the fetch window.
This module turns a flat, sorted batch into per-day lists of top-level
entries, each carrying its ordered replies.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from chat_archive.models.slack import Message
from chat_archive.sources import timestamps
from chat_archive.sources.slack_client import ApiFailure, SlackApiClient

logger = logging.getLogger(__name__)


@dataclass
class ThreadEntry:
    """A top-level row of a daily page.

    ``replies`` is only populated for thread roots. An entry whose message is
    itself a reply is an orphan: its parent was not part of the batch.
    """

    message: Message
    replies: List[Message] = field(default_factory=list)

    @property
    def is_reply(self) -> bool:
        return self.message.is_reply


def sort_messages(messages: Iterable[Message]) -> List[Message]:
    """Drop messages without ``ts`` and sort the rest ascending, numerically."""
    return sorted((m for m in messages if m.ts), key=lambda m: timestamps.to_decimal(m.ts))


def parent_ids(messages: Iterable[Message]) -> Set[str]:
    """``ts`` of every thread root or standalone message in ``messages``."""
    return {m.ts for m in messages if m.ts and m.is_parent}


def message_date(message: Message) -> date:
    """UTC calendar day of ``message``."""
    return timestamps.to_datetime(message.ts).date()


def group_by_date(messages: Iterable[Message]) -> "OrderedDict[date, List[Message]]":
    """Bucket messages by UTC day, ascending.

    Replies whose parent is part of ``messages`` are left out: they render
    nested under that parent. Input order is kept within each bucket.
    """
    batch = [m for m in messages if m.ts]
    parents = parent_ids(batch)
    grouped: Dict[date, List[Message]] = {}
    for message in batch:
        if message.is_reply and message.thread_ts in parents:
            continue
        grouped.setdefault(message_date(message), []).append(message)
    return OrderedDict(sorted(grouped.items()))


class ThreadReconciler:
    """Attach replies to their thread roots for one channel.

    Parameters:
        client: API client used for ``conversations.replies``.
        channel_id: Channel the batch was fetched from.
        batch: Every message fetched for the channel this run; replies found
            here are used even when the remote call fails.
        replies_cache: Per-run cache, keyed ``"<channel_id>:<thread_ts>"``.
    """

    def __init__(
        self,
        client: SlackApiClient,
        channel_id: str,
        batch: Iterable[Message],
        replies_cache: Dict[str, List[Message]],
    ):
        self.client = client
        self.channel_id = channel_id
        self.replies_cache = replies_cache
        self._local_replies: Dict[str, List[Message]] = {}
        for message in sort_messages(batch):
            if message.is_reply and message.thread_ts:
                self._local_replies.setdefault(message.thread_ts, []).append(message)

    def build_entries(self, messages: Iterable[Message]) -> List[ThreadEntry]:
        """Turn one day's messages into ordered top-level entries.

        Replies whose parent is among ``messages`` are nested under it and not
        repeated at top level; other replies stay top-level as orphans.
        """
        day = sort_messages(messages)
        parents = parent_ids(day)
        entries: List[ThreadEntry] = []
        for message in day:
            if message.is_reply:
                if message.thread_ts in parents:
                    continue
                entries.append(ThreadEntry(message=message))
                continue
            entry = ThreadEntry(message=message)
            if message.is_thread_root and message.ts:
                entry.replies = self.resolve_replies(message.ts)
            else:
                entry.replies = list(self._local_replies.get(message.ts or "", []))
            entries.append(entry)
        return entries

    def resolve_replies(self, thread_ts: str) -> List[Message]:
        """Return the sorted, de-duplicated replies of a thread.

        Remote replies are merged with the ones already in the batch. The
        result is cached for the rest of the run; on failure only the local
        replies are used (and cached).
        """
        cache_key = f"{self.channel_id}:{thread_ts}"
        cached: Optional[List[Message]] = self.replies_cache.get(cache_key)
        if cached is not None:
            return cached

        replies = list(self._local_replies.get(thread_ts, []))
        known = {m.ts for m in replies}

        result = self.client.list_thread_replies(self.channel_id, thread_ts)
        if isinstance(result, ApiFailure):
            logger.warning(
                f"conversations.replies failed for thread {thread_ts} in {self.channel_id}: {result.error}. "
                f"Using {len(replies)} locally known repl(ies)."
            )
        else:
            for message in result.data:
                if not message.ts or message.ts == thread_ts:
                    continue
                if message.ts not in known:
                    known.add(message.ts)
                    replies.append(message)

        merged = sort_messages(replies)
        self.replies_cache[cache_key] = merged
        return merged
