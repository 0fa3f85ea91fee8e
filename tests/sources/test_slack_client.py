from unittest.mock import MagicMock

import pytest
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web import SlackResponse

from chat_archive.sources.slack_client import ApiFailure, ApiSuccess, SlackApiClient, retry_after_seconds


def _response(data, status=200, headers=None):
    return SlackResponse(
        client=None,
        http_verb="POST",
        api_url="https://slack.com/api/test",
        req_args={},
        data=data,
        headers=headers or {},
        status_code=status,
    )


def _rate_limited(headers=None):
    return SlackApiError("ratelimited", _response({"ok": False, "error": "ratelimited"}, 429, headers))


@pytest.fixture
def web():
    return MagicMock()


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def client(web, sleep):
    return SlackApiClient("xoxb-test", client=web, sleep=sleep)


def test_empty_token_is_rejected():
    with pytest.raises(ValueError):
        SlackApiClient("")


def test_429_sleeps_hinted_duration_and_retries_once(client, web, sleep):
    web.users_info.side_effect = [
        _rate_limited({"Retry-After": "2"}),
        _response({"ok": True, "user": {"id": "U1", "name": "jdoe"}}),
    ]

    result = client.get_user_info("U1")

    assert isinstance(result, ApiSuccess)
    assert result.data.name == "jdoe"
    sleep.assert_called_once_with(2.0)
    assert web.users_info.call_count == 2


def test_second_429_is_a_failure(client, web, sleep):
    web.users_info.side_effect = [_rate_limited({"Retry-After": "1"}), _rate_limited({"Retry-After": "1"})]

    result = client.get_user_info("U1")

    assert result == ApiFailure("http_status_429")
    sleep.assert_called_once_with(1.0)


def test_429_without_hint_fails_without_sleeping(client, web, sleep):
    web.auth_test.side_effect = [_rate_limited()]

    assert client.auth_test() == ApiFailure("http_status_429")
    sleep.assert_not_called()
    assert web.auth_test.call_count == 1


def test_logical_error_maps_to_slack_error_code(client, web):
    web.conversations_history.side_effect = SlackApiError(
        "channel_not_found", _response({"ok": False, "error": "channel_not_found"})
    )

    assert client.list_channel_messages("C1", "1.000000") == ApiFailure("channel_not_found")


def test_non_2xx_maps_to_http_status(client, web):
    web.auth_test.side_effect = SlackApiError("server error", _response({"ok": False}, 503))

    assert client.auth_test() == ApiFailure("http_status_503")


def test_transport_error_is_request_failed(client, web):
    web.auth_test.side_effect = SlackClientError("connection reset")

    assert client.auth_test() == ApiFailure("request_failed")


def test_ok_false_response_without_exception(client, web):
    web.auth_test.return_value = _response({"ok": False, "error": "invalid_auth"})

    assert client.auth_test() == ApiFailure("invalid_auth")


def test_pagination_follows_next_cursor(client, web):
    web.conversations_list.side_effect = [
        _response({"ok": True, "channels": [{"id": "C1", "name": "general"}], "response_metadata": {"next_cursor": "abc"}}),
        _response({"ok": True, "channels": [{"id": "C2", "name": "random"}], "response_metadata": {"next_cursor": ""}}),
    ]

    result = client.list_public_channels()

    assert isinstance(result, ApiSuccess)
    assert [c.id for c in result.data] == ["C1", "C2"]
    first, second = web.conversations_list.call_args_list
    assert first.kwargs == {"types": "public_channel", "exclude_archived": True, "limit": 200}
    assert second.kwargs["cursor"] == "abc"


def test_history_passes_oldest_and_parses_messages(client, web):
    web.conversations_history.return_value = _response(
        {"ok": True, "messages": [{"ts": "1.000100", "text": "hi", "reactions": [{"name": "wave", "count": 2}]}]}
    )

    result = client.list_channel_messages("C1", "1.000000")

    web.conversations_history.assert_called_once_with(channel="C1", oldest="1.000000", inclusive=True, limit=200)
    assert result.data[0].reactions[0].count == 2


def test_malformed_payload_is_invalid_payload(client, web):
    web.conversations_history.return_value = _response({"ok": True, "messages": [{"ts": {"nested": True}}]})

    assert client.list_channel_messages("C1", None) == ApiFailure("invalid_payload")


def test_replies_use_thread_ts(client, web):
    web.conversations_replies.return_value = _response({"ok": True, "messages": []})

    client.list_thread_replies("C1", "5.000100")

    web.conversations_replies.assert_called_once_with(channel="C1", ts="5.000100", limit=200)


def test_permalink_success_and_missing(client, web):
    web.chat_getPermalink.side_effect = [
        _response({"ok": True, "permalink": "https://example.slack.com/p1"}),
        _response({"ok": True}),
    ]

    assert client.get_permalink("C1", "1.0") == ApiSuccess("https://example.slack.com/p1")
    assert client.get_permalink("C1", "2.0") == ApiFailure("missing_permalink")


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({"Retry-After": "3"}, 3.0),
        ({"retry-after": "1.5"}, 1.5),
        ({"Retry-After": ["4"]}, 4.0),
        ({"Retry-After": "soon"}, None),
        ({"Retry-After": "-1"}, None),
        ({"Retry-After": "inf"}, None),
        ({}, None),
    ],
)
def test_retry_after_seconds(headers, expected):
    assert retry_after_seconds(_response({"ok": False}, 429, headers)) == expected


def test_history_without_oldest_is_not_inclusive(client, web):
    web.conversations_history.return_value = _response({"ok": True, "messages": []})

    client.list_channel_messages("C1", None)

    web.conversations_history.assert_called_once_with(channel="C1", limit=200)
