from datetime import datetime, timezone
from decimal import Decimal

import pytest

from chat_archive.sources import timestamps


def test_compare_is_numeric_not_lexicographic():
    assert timestamps.compare("100.2", "99.3") > 0
    assert timestamps.compare("99.3", "100.2") < 0
    assert timestamps.compare("1700000000.000100", "1700000000.000100") == 0


def test_none_sorts_first():
    assert timestamps.compare(None, "1.0") < 0
    assert timestamps.compare("1.0", None) > 0
    assert timestamps.compare(None, None) == 0


def test_to_decimal_blank_is_zero():
    assert timestamps.to_decimal(None) == Decimal(0)
    assert timestamps.to_decimal("  ") == Decimal(0)


def test_to_decimal_rejects_garbage():
    with pytest.raises(ValueError):
        timestamps.to_decimal("not-a-ts")


def test_to_datetime_is_utc_and_truncates_microseconds():
    moment = timestamps.to_datetime("1770887700.1234569")
    assert moment.tzinfo == timezone.utc
    assert moment == datetime(2026, 2, 12, 9, 15, 0, 123456, tzinfo=timezone.utc)


def test_to_datetime_blank_is_epoch():
    assert timestamps.to_datetime(None) == timestamps.EPOCH


def test_format_epoch_second():
    assert timestamps.format_epoch_second(1700000000) == "1700000000.000000"
    assert timestamps.from_datetime(datetime(2026, 2, 12, tzinfo=timezone.utc)) == "1770854400.000000"


def test_latest_only_moves_forward():
    assert timestamps.latest("5.0", ["3.0", None, "4.9"]) == "5.0"
    assert timestamps.latest("5.0", ["10.0", "6.0"]) == "10.0"
    assert timestamps.latest(None, []) is None
    assert timestamps.latest(None, [None, "1.5"]) == "1.5"
