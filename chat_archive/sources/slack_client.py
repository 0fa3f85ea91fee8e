"""Slack Web API access for the archiver.

Wraps ``slack_sdk.WebClient`` so that every call returns a tagged result,
``ApiSuccess`` or ``ApiFailure``, instead of raising. Callers decide per call
site whether a failure is fatal, skips a channel, or degrades to a default.

Rate limiting: on HTTP 429 with a usable ``Retry-After`` header the request
sleeps exactly that long and is retried once. A 429 without a usable hint,
or a second 429, is a failure.
"""

import logging
import math
import time
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Callable, Dict, Final, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web import SlackResponse

from chat_archive.metrics.metrics import API_CALLS, API_LATENCY, OP_ITEMS, OP_LATENCY
from chat_archive.models.slack import AuthInfo, Channel, Message, SlackUser

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class ApiSuccess(Generic[T]):
    """Successful call carrying the typed payload."""

    data: T


@dataclass(frozen=True)
class ApiFailure:
    """Logical or transport failure.

    ``error`` is the Slack error code for ``ok=false`` responses,
    ``http_status_<code>`` for non-2xx responses and ``request_failed`` for
    transport errors.
    """

    error: str


ApiResult = Union[ApiSuccess[T], ApiFailure]


def retry_after_seconds(response: Optional[SlackResponse]) -> Optional[float]:
    """Return the ``Retry-After`` hint in seconds, or None if absent or unusable."""
    headers = getattr(response, "headers", None) or {}
    value: Any = None
    for key, header_value in headers.items():
        if str(key).lower() == "retry-after":
            value = header_value
            break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def _error_code(response: Optional[SlackResponse], status: int) -> str:
    if status and not 200 <= status < 300:
        return f"http_status_{status}"
    error = None
    try:
        error = response.get("error") if response is not None else None
    except ValueError:
        error = None
    return str(error) if error else "unknown_error"


class SlackApiClient:
    """Thin, failure-tolerant facade over the Slack Web API methods the archiver uses.

    Args:
        token: Bot token used as bearer credential.
        client: Optional pre-built ``WebClient`` (tests inject a mock).
        sleep: Sleep function used for the 429 back-off.
        timeout: Per-request timeout in seconds.
    """

    PAGE_LIMIT: Final[int] = 200
    """Max items per page requested from Slack"""

    def __init__(
        self,
        token: str,
        client: Optional[WebClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: int = 20,
    ):
        if not token:
            raise ValueError("Slack bot token is not set")
        # No SDK retry handlers: 429 handling lives in _api_call.
        self.client = client if client is not None else WebClient(token=token, timeout=timeout, retry_handlers=[])
        self._sleep = sleep

    def _api_call(self, method: str, func: Callable[..., SlackResponse], **kwargs: Any) -> ApiResult[Dict[str, Any]]:
        """Execute one Slack API request with the single-retry 429 policy and metrics.

        Args:
            method: Slack method name, used for metrics and logs (e.g. "users.info").
            func: Bound ``WebClient`` method.
            **kwargs: Arguments for ``func``.

        Returns:
            ``ApiSuccess`` with the response body, or ``ApiFailure``.
        """
        rate_limited_once = False
        while True:
            call_start = perf_counter()
            try:
                resp = func(**kwargs)
            except SlackApiError as e:
                response = e.response
                status = int(getattr(response, "status_code", 0) or 0)
                self._observe(method, str(status), call_start)
                if status == 429 and not rate_limited_once:
                    wait_seconds = retry_after_seconds(response)
                    if wait_seconds is None:
                        logger.warning(f"429 on {method} without a usable Retry-After header")
                        return ApiFailure(_error_code(response, status))
                    logger.info(f"429 on {method}, Retry-After={wait_seconds}s")
                    rate_limited_once = True
                    self._sleep(wait_seconds)
                    continue
                error = _error_code(response, status)
                logger.debug(f"Slack {method} failed: {error}")
                return ApiFailure(error)
            except (SlackClientError, OSError) as e:
                self._observe(method, "error", call_start)
                logger.warning(f"Slack {method} request failed: {e}")
                return ApiFailure("request_failed")

            self._observe(method, str(getattr(resp, "status_code", 200)), call_start)
            data = resp.data if isinstance(resp.data, dict) else {}
            if not data.get("ok", False):
                return ApiFailure(str(data.get("error") or "unknown_error"))
            return ApiSuccess(data)

    @staticmethod
    def _observe(method: str, status: str, call_start: float) -> None:
        API_CALLS.labels(method=method, status=status).inc()
        API_LATENCY.labels(method=method, status=status).observe(perf_counter() - call_start)

    def _paginate(
        self, method: str, func: Callable[..., SlackResponse], key: str, **kwargs: Any
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Follow ``response_metadata.next_cursor`` until exhausted.

        Any failing page fails the whole operation; partial pages are discarded.
        """
        op_start = perf_counter()
        items: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            page_kwargs = dict(kwargs, limit=SlackApiClient.PAGE_LIMIT)
            if cursor:
                page_kwargs["cursor"] = cursor
            result = self._api_call(method, func, **page_kwargs)
            if isinstance(result, ApiFailure):
                return result
            page = result.data.get(key) or []
            items.extend(item for item in page if isinstance(item, dict))
            logger.debug(f"{method}: page items={len(page)}")
            metadata = result.data.get("response_metadata") or {}
            cursor = metadata.get("next_cursor")
            if not cursor:
                break
        op_elapsed = perf_counter() - op_start
        logger.debug(f"{method}: done items={len(items)} elapsed={op_elapsed:.3f}s")
        OP_LATENCY.labels(operation=method).observe(op_elapsed)
        OP_ITEMS.labels(operation=method).observe(len(items))
        return ApiSuccess(items)

    @staticmethod
    def _parse_list(method: str, model: Type[M], items: List[Dict[str, Any]]) -> ApiResult[List[M]]:
        try:
            return ApiSuccess([model.model_validate(item) for item in items])
        except ValidationError as e:
            logger.warning(f"Unexpected payload from {method}: {e}")
            return ApiFailure("invalid_payload")

    def auth_test(self) -> ApiResult[AuthInfo]:
        result = self._api_call("auth.test", self.client.auth_test)
        if isinstance(result, ApiFailure):
            return result
        return ApiSuccess(AuthInfo.model_validate(result.data))

    def list_public_channels(self) -> ApiResult[List[Channel]]:
        """List non-archived public channels."""
        result = self._paginate(
            "conversations.list",
            self.client.conversations_list,
            "channels",
            types="public_channel",
            exclude_archived=True,
        )
        if isinstance(result, ApiFailure):
            return result
        return self._parse_list("conversations.list", Channel, result.data)

    def list_channel_messages(self, channel_id: str, oldest: Optional[str]) -> ApiResult[List[Message]]:
        """List messages at or after ``oldest``; the origin message itself is included."""
        kwargs: Dict[str, Any] = {"channel": channel_id}
        if oldest:
            kwargs["oldest"] = oldest
            kwargs["inclusive"] = True
        result = self._paginate("conversations.history", self.client.conversations_history, "messages", **kwargs)
        if isinstance(result, ApiFailure):
            return result
        return self._parse_list("conversations.history", Message, result.data)

    def list_thread_replies(self, channel_id: str, thread_ts: str) -> ApiResult[List[Message]]:
        """List a thread; the root message is included by Slack as the first item."""
        result = self._paginate(
            "conversations.replies",
            self.client.conversations_replies,
            "messages",
            channel=channel_id,
            ts=thread_ts,
        )
        if isinstance(result, ApiFailure):
            return result
        return self._parse_list("conversations.replies", Message, result.data)

    def get_permalink(self, channel_id: str, message_ts: str) -> ApiResult[str]:
        result = self._api_call(
            "chat.getPermalink", self.client.chat_getPermalink, channel=channel_id, message_ts=message_ts
        )
        if isinstance(result, ApiFailure):
            return result
        permalink = result.data.get("permalink")
        if not permalink:
            return ApiFailure("missing_permalink")
        return ApiSuccess(str(permalink))

    def get_user_info(self, user_id: str) -> ApiResult[SlackUser]:
        result = self._api_call("users.info", self.client.users_info, user=user_id)
        if isinstance(result, ApiFailure):
            return result
        user = result.data.get("user")
        if not isinstance(user, dict):
            return ApiFailure("missing_user")
        return ApiSuccess(SlackUser.model_validate(user))
