"""Slack timestamp helpers.

Slack identifies messages by a ``ts`` string such as ``"1700000000.000100"``:
seconds since the epoch with a microsecond fraction. The value doubles as the
message ID inside a channel, so it is never converted to ``float`` for
ordering; comparisons go through ``Decimal`` to stay lossless.
"""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Iterable, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_decimal(ts: Optional[str]) -> Decimal:
    """Parse ``ts`` into a ``Decimal``.

    Raises:
        ValueError: If ``ts`` is not a decimal number.
    """
    if ts is None or not str(ts).strip():
        return Decimal(0)
    try:
        return Decimal(str(ts).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid Slack timestamp: {ts!r}") from e


def compare(first: Optional[str], second: Optional[str]) -> int:
    """Numeric three-way comparison; ``None`` sorts before everything."""
    if first is None:
        return 0 if second is None else -1
    if second is None:
        return 1
    a, b = to_decimal(first), to_decimal(second)
    return (a > b) - (a < b)


def is_after(first: Optional[str], second: Optional[str]) -> bool:
    return compare(first, second) > 0


def to_datetime(ts: Optional[str]) -> datetime:
    """Convert ``ts`` to an aware UTC datetime, truncated to microseconds."""
    if ts is None or not str(ts).strip():
        return EPOCH
    value = to_decimal(ts)
    seconds = int(value)
    micros = int(((value - seconds) * 1_000_000).to_integral_value(rounding=ROUND_DOWN))
    return EPOCH + timedelta(seconds=seconds, microseconds=micros)


def format_epoch_second(epoch_second: int) -> str:
    """Format whole epoch seconds the way Slack expects for ``oldest``."""
    return f"{int(epoch_second)}.000000"


def from_datetime(moment: datetime) -> str:
    return format_epoch_second(int(moment.timestamp()))


def latest(current: Optional[str], candidates: Iterable[Optional[str]]) -> Optional[str]:
    """Return the numerically largest of ``current`` and ``candidates``.

    ``None`` candidates are skipped, so the result only moves forward.
    """
    best = current
    for ts in candidates:
        if ts is None:
            continue
        if best is None or compare(ts, best) > 0:
            best = ts
    return best
