"""Configuration for the chat archiver.

Settings come from an optional YAML file and the environment; environment
variables win. Command-line overrides are applied last by the CLI.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

SLACK_TOKEN_ENV = "SLACK_BOT_TOKEN"
CHANNELS_ALLOWLIST_ENV = "CHAT_ARCHIVE_CHANNELS"
OUTPUT_DIR_ENV = "CHAT_ARCHIVE_OUTPUT_DIR"
STATE_DIR_ENV = "CHAT_ARCHIVE_STATE_DIR"
LOOKBACK_DAYS_ENV = "CHAT_ARCHIVE_LOOKBACK_DAYS"
SITE_BASE_URL_ENV = "CHAT_ARCHIVE_SITE_BASE_URL"
OUTPUT_FORMAT_ENV = "CHAT_ARCHIVE_OUTPUT_FORMAT"

ENV_FIELDS: Dict[str, str] = {
    SLACK_TOKEN_ENV: "slack_token",
    CHANNELS_ALLOWLIST_ENV: "channel_allowlist",
    OUTPUT_DIR_ENV: "output_dir",
    STATE_DIR_ENV: "state_dir",
    LOOKBACK_DAYS_ENV: "lookback_days",
    SITE_BASE_URL_ENV: "site_base_url",
    OUTPUT_FORMAT_ENV: "output_format",
}

DEFAULT_LOOKBACK_DAYS = 1


def parse_allowlist(value: Any) -> List[str]:
    """Split a comma-separated allow-list; trims entries and strips a leading ``#``."""
    if value is None:
        return []
    tokens = value.split(",") if isinstance(value, str) else [str(v) for v in value]
    channels: List[str] = []
    for token in tokens:
        token = token.strip()
        if token.startswith("#"):
            token = token[1:].strip()
        if token:
            channels.append(token)
    return channels


class ArchiveConfig(BaseModel):
    """Settings for one archive run."""

    slack_token: str = Field(default="", repr=False, description="Slack bot token")
    channel_allowlist: List[str] = Field(default_factory=list, description="Channel names to archive")
    output_dir: Path = Field(default=Path("docs"), description="Root of the generated document tree")
    state_dir: Path = Field(default=Path(".chat-archive"), description="Directory holding cursor.json")
    lookback_days: int = Field(default=DEFAULT_LOOKBACK_DAYS, description="Days of history fetched per run")
    site_base_url: str = Field(default="", description="Public URL of the published archive")
    output_format: Literal["markdown", "html"] = Field(default="markdown", description="Page format")
    request_timeout_seconds: int = Field(default=20, description="Per-request Slack API timeout")

    @field_validator("slack_token", mode="before")
    @classmethod
    def _strip_token(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("channel_allowlist", mode="before")
    @classmethod
    def _parse_allowlist(cls, value: Any) -> List[str]:
        return parse_allowlist(value)

    @field_validator("lookback_days", mode="before")
    @classmethod
    def _parse_lookback(cls, value: Any) -> int:
        try:
            days = int(str(value).strip())
        except (TypeError, ValueError):
            days = 0
        if days < 1:
            logger.warning(f"Invalid lookback days {value!r}, using {DEFAULT_LOOKBACK_DAYS}")
            return DEFAULT_LOOKBACK_DAYS
        return days

    @field_validator("site_base_url", mode="before")
    @classmethod
    def _strip_base_url(cls, value: Any) -> str:
        return str(value or "").strip().rstrip("/")

    @field_validator("output_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: Any) -> str:
        return str(value or "markdown").strip().lower()


class ConfigLoader:
    """Utility class for loading configuration from YAML files and the environment."""

    @staticmethod
    def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """Return config fields set through environment variables."""
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}
        for var, field_name in ENV_FIELDS.items():
            value = env.get(var)
            if value is not None and value.strip():
                overrides[field_name] = value
        return overrides

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> ArchiveConfig:
        return ArchiveConfig(**ConfigLoader.env_overrides(environ))

    @staticmethod
    def load(
        path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ArchiveConfig:
        """Load configuration.

        Args:
            path: Optional YAML file; ignored when missing.
            environ: Environment mapping (defaults to ``os.environ``).
            overrides: Explicit values (e.g. CLI flags); ``None`` values are skipped.

        Returns:
            ArchiveConfig: Merged configuration.
        """
        raw_data: Dict[str, Any] = {}
        if path:
            p = Path(path)
            if p.exists():
                with open(p, "r", encoding="utf-8") as f:
                    loaded = yaml.safe_load(f) or {}
                if not isinstance(loaded, dict):
                    raise ValueError(f"Configuration file {path} must contain a mapping")
                raw_data.update(loaded)
            else:
                logger.debug(f"Config file {path} not found, using environment only")

        raw_data.update(ConfigLoader.env_overrides(environ))
        if overrides:
            raw_data.update({k: v for k, v in overrides.items() if v is not None})
        return ArchiveConfig(**raw_data)
