"""Subathon timer configuration"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DATA_DIR = Path.cwd() / "data"

BOT_SCOPES = [
    "user:bot",  # Bot identifier
    "user:read:chat",  # Read chat messages
    "user:write:chat",  # Send command feedback
]

BROADCASTER_SCOPES = [
    "channel:bot",  # Allow bot to join channel
    "channel:read:subscriptions",  # Subscription EventSub
    "bits:read",  # Cheer EventSub
]


def oauth_url(client_id: str, redirect_uri: str, scopes: list[str]) -> str:
    """Twitch authorization-code URL requesting *scopes*."""
    scope = "+".join(s.replace(":", "%3A") for s in scopes)
    return (
        "https://id.twitch.tv/oauth2/authorize"
        f"?client_id={client_id}"
        f"&redirect_uri={quote(redirect_uri, safe='')}"
        "&response_type=code"
        f"&scope={scope}"
    )


def _field_key(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


class TimerConfig(BaseModel):
    """Timer behaviour options, read-only for the lifetime of a run."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    start_seconds: float = Field(default=3600, ge=0, description="Initial duration")
    autostart: bool = True
    pause_on_zero: bool = True
    storage_key: str = Field(default="subathon-timer-v1", min_length=1)

    # Seconds granted per event
    sub_seconds: float = 60
    resub_per_month_seconds: float = 0
    gift_sub_seconds: float = 60
    bits_per_second: float = Field(default=10, description="Bits per granted second")
    tip_per_second: float = Field(default=1, description="Currency units per granted second")

    # Tier multipliers; unset values use the tier defaults
    t1_mult: float | None = None
    t2_mult: float | None = None
    t3_mult: float | None = None
    prime_mult: float | None = None
    apply_tier_to_gifts: bool = True
    apply_tier_to_resub_months: bool = True

    # Chat commands
    enable_chat_commands: bool = True
    add_time_command: str = "!addtime"
    sub_time_command: str = "!subtime"
    who_can_use: str = Field(default="mods", description="broadcaster | mods | everyone")
    channel: str = Field(default="", description="Channel login, used to recognise the owner")
    command_feedback: bool = True
    feedback_format: str = "{user} {op} {delta} → {remaining}"
    feedback_seconds: float = 2.5

    @field_validator("storage_key", "add_time_command", "sub_time_command")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("who_can_use")
    @classmethod
    def normalize_policy(cls, v: str) -> str:
        return v.strip().lower()

    @classmethod
    def from_field_data(
        cls, data: Mapping[str, Any] | None = None, base: TimerConfig | None = None
    ) -> TimerConfig:
        """Build a config from loosely-typed field data.

        Keys may be camelCase or snake_case. Absent or null keys keep the
        value from *base* (or the default); keys that fail validation are
        dropped with a warning instead of raising.
        """
        fields = {_field_key(name): name for name in cls.model_fields}
        values: dict[str, Any] = base.model_dump() if base else {}
        for key, value in (data or {}).items():
            name = fields.get(_field_key(str(key)))
            if name is not None and value is not None:
                values[name] = value

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            invalid = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            logger.warning(f"Ignoring invalid timer options: {', '.join(sorted(invalid))}")
            return cls.model_validate({k: v for k, v in values.items() if k not in invalid})


class SubathonSettings(BaseSettings):
    """Subathon service settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Twitch OAuth (bot is disabled when client_id is empty)
    client_id: str = Field(default="", description="Twitch OAuth Client ID")
    client_secret: str = Field(default="", description="Twitch OAuth Client Secret")
    bot_id: str = Field(default="", description="Bot User ID")
    owner_id: str = Field(default="", description="Owner User ID")
    broadcaster_id: str = Field(default="", description="Channel whose events drive the timer")
    conduit_id: str = Field(default="", description="Twitch EventSub Conduit ID")
    oauth_redirect_uri: str = "http://localhost:4343/oauth/callback"
    reply_in_chat: bool = Field(default=True, description="Echo command feedback to chat")

    # Persistence
    database_url: str = Field(default="", description="PostgreSQL URL, empty for file storage")
    state_file: Path = Field(default=DATA_DIR / "subathon_state.json")

    # Render output
    timer_file: Path | None = Field(default=DATA_DIR / "timer.txt")
    feedback_file: Path | None = Field(default=None)
    render_fps: float = Field(default=10, gt=0, le=120)

    # Write-behind persistence
    persist_interval_seconds: float = Field(default=3.0, gt=0)
    persist_debounce_seconds: float = Field(default=0.5, ge=0)

    # Initialization
    timer_config_file: Path | None = Field(default=None, description="JSON field data")
    load_grace_seconds: float = Field(default=0, ge=0)

    # Control server
    control_host: str = "127.0.0.1"
    control_port: int = 4344

    # Environment
    log_level: str = Field(default="INFO", description="Logging level")

    timer: TimerConfig = Field(default_factory=TimerConfig)

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL starts with postgresql://"""
        if v and not v.startswith("postgresql://"):
            raise ValueError("DATABASE_URL must start with 'postgresql://'")
        return v

    @field_validator("timer_file", "feedback_file", "timer_config_file", mode="before")
    @classmethod
    def empty_path_is_none(cls, v: object) -> object:
        return None if isinstance(v, str) and not v.strip() else v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def bot_enabled(self) -> bool:
        return bool(self.client_id and self.client_secret and self.bot_id)

    def authorization_urls(self) -> dict[str, str]:
        """Authorization links for the bot account and the broadcaster."""
        return {
            "bot": oauth_url(self.client_id, self.oauth_redirect_uri, BOT_SCOPES),
            "broadcaster": oauth_url(
                self.client_id, self.oauth_redirect_uri, BROADCASTER_SCOPES
            ),
        }

    def load_timer_config(self) -> TimerConfig:
        """Return ``timer`` overlaid with field data from ``timer_config_file``."""
        path = self.timer_config_file
        if path is None or not path.exists():
            return self.timer
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read timer config {path}: {e}")
            return self.timer
        if not isinstance(data, dict):
            logger.warning(f"Timer config {path} is not a JSON object, ignoring")
            return self.timer
        return TimerConfig.from_field_data(data, base=self.timer)


@lru_cache
def get_settings() -> SubathonSettings:
    """Get cached settings instance"""
    return SubathonSettings()
