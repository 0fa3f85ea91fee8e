from datetime import date

from chat_archive.render.index import list_channels, list_dates


def test_list_channels_sorted_case_insensitively(temp_dir):
    daily = temp_dir / "daily"
    for name in ("random", "General", "dev"):
        (daily / name).mkdir(parents=True)
    (daily / "stray.txt").write_text("x")

    assert list_channels(daily) == ["dev", "General", "random"]


def test_list_channels_missing_root(temp_dir):
    assert list_channels(temp_dir / "daily") == []


def test_list_dates_newest_first_and_filters_names(temp_dir):
    channel = temp_dir / "general"
    channel.mkdir()
    for name in ("2026-02-12.md", "2026-02-14.md", "2026-02-13.html", "index.md", "2026-13-01.md", "notes.md"):
        (channel / name).write_text("x")

    assert list_dates(channel, "md") == [date(2026, 2, 14), date(2026, 2, 12)]
    assert list_dates(channel, "html") == [date(2026, 2, 13)]
