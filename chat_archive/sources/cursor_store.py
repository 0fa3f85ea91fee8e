"""Persistent per-channel sync cursors.

A cursor is the ``ts`` of the most recent message archived for a channel.
Cursors only move forward: advancing to an older timestamp is a no-op and
entries are never dropped, so channels removed from the allow-list keep
their history.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from chat_archive.sources import timestamps

logger = logging.getLogger(__name__)


@dataclass
class CursorState:
    """In-memory cursor map for one run.

    Parameters:
        channels: channel ID -> last archived Slack timestamp.
    """

    channels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "CursorState":
        return cls()

    def get(self, channel_id: str) -> Optional[str]:
        value = self.channels.get(channel_id)
        return value if value and value.strip() else None

    def advance(self, channel_id: str, ts: Optional[str]) -> bool:
        """Move the cursor for ``channel_id`` to ``ts`` if it is newer.

        Returns:
            bool: True if the stored value changed.
        """
        if ts is None or not ts.strip():
            return False
        current = self.get(channel_id)
        if current is not None and not timestamps.is_after(ts, current):
            return False
        self.channels[channel_id] = ts
        return True

    def merge(self, other: "CursorState") -> None:
        """Advance every channel to the newer of both states."""
        for channel_id, ts in other.channels.items():
            self.advance(channel_id, ts)

    def copy(self) -> "CursorState":
        return CursorState(channels=dict(self.channels))


def _parse_state(data: Any) -> CursorState:
    """Accept ``{"channels": {...}}`` as well as a bare ``{channel: ts}`` mapping."""
    if not isinstance(data, dict):
        raise ValueError("cursor file must contain a JSON object")
    channels = data["channels"] if "channels" in data else data
    if not isinstance(channels, dict):
        raise ValueError("cursor 'channels' must be a JSON object")
    state = CursorState()
    for channel_id, ts in channels.items():
        try:
            if not isinstance(ts, str) or not ts.strip():
                raise ValueError("not a timestamp string")
            timestamps.to_decimal(ts)
        except ValueError:
            logger.warning(f"Ignoring invalid cursor for channel {channel_id}: {ts!r}")
            continue
        state.channels[str(channel_id)] = ts.strip()
    return state


class CursorStore:
    """JSON-file backed cursor persistence under the state directory."""

    CURSOR_FILE_NAME = "cursor.json"

    def __init__(self, state_dir: Path):
        self.path = Path(state_dir) / self.CURSOR_FILE_NAME

    def load(self) -> CursorState:
        """Load the stored cursors.

        Never raises: a missing file is an empty state and an unreadable or
        malformed file is logged and treated as empty, so the run starts fresh.
        """
        if not self.path.exists():
            logger.debug(f"No cursor file at {self.path}, starting fresh")
            return CursorState.empty()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                state = _parse_state(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read cursor state from {self.path}. Starting fresh: {e}")
            return CursorState.empty()
        logger.debug(f"Loaded {len(state.channels)} cursor(s) from {self.path}")
        return state

    def save(self, state: CursorState) -> None:
        """Persist ``state``, merged with whatever is already on disk.

        The file is replaced atomically so an interrupted write leaves the
        previous cursors intact.

        Raises:
            OSError: If the state directory or file cannot be written.
        """
        merged = self.load() if self.path.exists() else CursorState.empty()
        merged.merge(state)

        dir_name = self.path.parent
        dir_name.mkdir(parents=True, exist_ok=True)
        payload = {"channels": dict(sorted(merged.channels.items()))}
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp_cursor_", dir=str(dir_name))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmpf:
                json.dump(payload, tmpf, ensure_ascii=False, indent=2)
                tmpf.write("\n")
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug(f"Saved {len(merged.channels)} cursor(s) to {self.path}")
