"""Discover archived channels and days from the output tree.

Indexes are rebuilt from disk rather than from the current run so channels
and days archived by earlier runs stay listed.
"""

from datetime import date
from pathlib import Path
from typing import List, Optional


def list_channels(daily_root: Path) -> List[str]:
    """Channel directory names under ``daily_root``, sorted case-insensitively."""
    if not daily_root.exists():
        return []
    return sorted((p.name for p in daily_root.iterdir() if p.is_dir()), key=lambda name: (name.lower(), name))


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def list_dates(channel_dir: Path, extension: str) -> List[date]:
    """Days with a ``YYYY-MM-DD.<extension>`` page in ``channel_dir``, newest first."""
    if not channel_dir.exists():
        return []
    suffix = f".{extension}"
    dates = []
    for path in channel_dir.iterdir():
        if not path.is_file() or not path.name.endswith(suffix):
            continue
        parsed = _parse_date(path.name[: -len(suffix)])
        if parsed is not None:
            dates.append(parsed)
    return sorted(dates, reverse=True)
