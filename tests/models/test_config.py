from pathlib import Path

import pytest
from pydantic import ValidationError

from chat_archive.models.config import ArchiveConfig, ConfigLoader, parse_allowlist


def test_parse_allowlist_trims_and_strips_hash():
    assert parse_allowlist(" #general, random ,,#  , Dev") == ["general", "random", "Dev"]
    assert parse_allowlist(None) == []
    assert parse_allowlist(["#a", " b "]) == ["a", "b"]


def test_defaults():
    config = ArchiveConfig()
    assert config.output_dir == Path("docs")
    assert config.state_dir == Path(".chat-archive")
    assert config.lookback_days == 1
    assert config.output_format == "markdown"
    assert config.site_base_url == ""


@pytest.mark.parametrize("value", ["0", "-3", "abc", ""])
def test_invalid_lookback_falls_back_to_one(value):
    assert ArchiveConfig(lookback_days=value).lookback_days == 1


def test_from_env():
    config = ConfigLoader.from_env(
        {
            "SLACK_BOT_TOKEN": " xoxb-1 ",
            "CHAT_ARCHIVE_CHANNELS": "#general,random",
            "CHAT_ARCHIVE_LOOKBACK_DAYS": "3",
            "CHAT_ARCHIVE_SITE_BASE_URL": "https://archive.example.com//",
            "CHAT_ARCHIVE_OUTPUT_FORMAT": "HTML",
            "CHAT_ARCHIVE_OUTPUT_DIR": "  ",
        }
    )

    assert config.slack_token == "xoxb-1"
    assert config.channel_allowlist == ["general", "random"]
    assert config.lookback_days == 3
    assert config.site_base_url == "https://archive.example.com"
    assert config.output_format == "html"
    assert config.output_dir == Path("docs")


def test_token_is_not_in_repr():
    assert "xoxb-secret" not in repr(ArchiveConfig(slack_token="xoxb-secret"))


def test_unknown_format_is_rejected():
    with pytest.raises(ValidationError):
        ArchiveConfig(output_format="pdf")


def test_load_yaml_then_env_then_overrides(temp_dir):
    config_path = temp_dir / "chat-archive.yaml"
    config_path.write_text("channel_allowlist: [general]\nlookback_days: 2\noutput_dir: site\n", encoding="utf-8")

    config = ConfigLoader.load(
        str(config_path),
        environ={"CHAT_ARCHIVE_LOOKBACK_DAYS": "5"},
        overrides={"output_dir": "out", "state_dir": None},
    )

    assert config.channel_allowlist == ["general"]
    assert config.lookback_days == 5
    assert config.output_dir == Path("out")
    assert config.state_dir == Path(".chat-archive")


def test_load_missing_file_uses_environment(temp_dir):
    config = ConfigLoader.load(str(temp_dir / "absent.yaml"), environ={"CHAT_ARCHIVE_CHANNELS": "general"})
    assert config.channel_allowlist == ["general"]


def test_load_rejects_non_mapping_yaml(temp_dir):
    config_path = temp_dir / "bad.yaml"
    config_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        ConfigLoader.load(str(config_path), environ={})
