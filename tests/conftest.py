from typing import Any, Dict

import pytest

from chat_archive.models.config import ArchiveConfig
from chat_archive.models.slack import Message


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path


@pytest.fixture
def make_message():
    def _make(ts: str, **fields: Any) -> Message:
        payload: Dict[str, Any] = {"ts": ts, "user": "U1", "text": f"message {ts}"}
        payload.update(fields)
        return Message.from_api(payload)

    return _make


@pytest.fixture
def archive_config(tmp_path):
    return ArchiveConfig(
        slack_token="xoxb-test",
        channel_allowlist="general, random",
        output_dir=tmp_path / "docs",
        state_dir=tmp_path / "state",
        lookback_days=1,
    )
