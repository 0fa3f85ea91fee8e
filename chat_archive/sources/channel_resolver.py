"""Match the configured channel allow-list against the live channel list."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from chat_archive.models.slack import Channel


@dataclass(frozen=True)
class ChannelResolution:
    """Outcome of resolving an allow-list.

    Both lists keep allow-list order.
    """

    resolved: List[Channel] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def resolve(allowlist: Sequence[str], channels: Sequence[Channel]) -> ChannelResolution:
    """Resolve allow-listed names to channels, case-insensitively.

    The first channel wins when the live list repeats a name. Entries with no
    match are reported in ``missing`` exactly as configured.
    """
    by_name: Dict[str, Channel] = {}
    for channel in channels:
        name = _normalize(channel.name)
        if name:
            by_name.setdefault(name, channel)

    resolved: List[Channel] = []
    missing: List[str] = []
    for allowed in allowlist:
        channel = by_name.get(_normalize(allowed))
        if channel is None:
            missing.append(allowed)
        else:
            resolved.append(channel)
    return ChannelResolution(resolved=resolved, missing=missing)
