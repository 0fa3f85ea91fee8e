from datetime import date
from unittest.mock import MagicMock

from chat_archive.models.slack import Message
from chat_archive.sources.slack_client import ApiFailure, ApiSuccess
from chat_archive.sources.threads import ThreadReconciler, group_by_date, sort_messages

# 2026-02-12 09:15:00 UTC and the following day
DAY1 = 1770887700
DAY2 = DAY1 + 86400


def _ts(base: int, offset: int = 0) -> str:
    return f"{base + offset}.000100"


def _client(replies=None):
    client = MagicMock()
    client.list_thread_replies.return_value = replies if replies is not None else ApiSuccess([])
    return client


def test_sort_messages_is_numeric_and_drops_missing_ts(make_message):
    messages = [make_message("100.2"), Message(text="no ts"), make_message("99.3")]
    assert [m.ts for m in sort_messages(messages)] == ["99.3", "100.2"]


def test_reply_with_parent_in_batch_is_not_grouped_even_on_other_day(make_message):
    root = make_message(_ts(DAY1), thread_ts=_ts(DAY1))
    reply = make_message(_ts(DAY2), thread_ts=_ts(DAY1))
    standalone = make_message(_ts(DAY2, 60))

    grouped = group_by_date([root, reply, standalone])

    assert list(grouped) == [date(2026, 2, 12), date(2026, 2, 13)]
    assert grouped[date(2026, 2, 12)] == [root]
    assert grouped[date(2026, 2, 13)] == [standalone]


def test_orphan_reply_is_grouped_by_its_own_day(make_message):
    orphan = make_message(_ts(DAY2), thread_ts=_ts(DAY1 - 86400))
    assert group_by_date([orphan]) == {date(2026, 2, 13): [orphan]}


def test_root_gets_merged_sorted_replies_without_root_or_duplicates(make_message):
    root_ts = _ts(DAY1)
    root = make_message(root_ts, thread_ts=root_ts)
    local_reply = make_message(_ts(DAY1, 20), thread_ts=root_ts)
    remote = [
        root,
        make_message(_ts(DAY1, 10), thread_ts=root_ts),
        make_message(_ts(DAY1, 20), thread_ts=root_ts),
    ]
    client = _client(ApiSuccess(remote))
    reconciler = ThreadReconciler(client, "C1", [root, local_reply], {})

    entries = reconciler.build_entries([root])

    assert len(entries) == 1
    assert [r.ts for r in entries[0].replies] == [_ts(DAY1, 10), _ts(DAY1, 20)]
    client.list_thread_replies.assert_called_once_with("C1", root_ts)


def test_replies_fetched_once_per_thread_per_run(make_message):
    root_ts = _ts(DAY1)
    root = make_message(root_ts, thread_ts=root_ts)
    cache = {}
    client = _client(ApiSuccess([make_message(_ts(DAY1, 5), thread_ts=root_ts)]))

    ThreadReconciler(client, "C1", [root], cache).build_entries([root])
    ThreadReconciler(client, "C1", [root], cache).build_entries([root])

    assert client.list_thread_replies.call_count == 1
    assert "C1:" + root_ts in cache


def test_remote_failure_falls_back_to_local_replies(make_message):
    root_ts = _ts(DAY1)
    root = make_message(root_ts, thread_ts=root_ts)
    reply = make_message(_ts(DAY1, 30), thread_ts=root_ts)
    reconciler = ThreadReconciler(_client(ApiFailure("ratelimited")), "C1", [root, reply], {})

    entries = reconciler.build_entries([root, reply])

    assert len(entries) == 1
    assert entries[0].replies == [reply]


def test_orphan_reply_becomes_top_level_entry(make_message):
    orphan = make_message(_ts(DAY1, 40), thread_ts=_ts(DAY1 - 86400))
    standalone = make_message(_ts(DAY1))
    client = _client()

    entries = ThreadReconciler(client, "C1", [standalone, orphan], {}).build_entries([orphan, standalone])

    assert [e.message.ts for e in entries] == [standalone.ts, orphan.ts]
    assert entries[1].is_reply
    assert entries[1].replies == []
    client.list_thread_replies.assert_not_called()
