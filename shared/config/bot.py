"""
Bot configuration loader.

Design rules:
- Import-safe (no side effects)
- Environment-only (optionally seeded from a .env file)
- Every missing required key is reported at once
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

from core.errors import ConfigError
from shared.logging.logger import get_logger

log = get_logger("shared.config.bot")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class DatabaseConfig:
    path: str = "data/beastie.db"
    teammate_table: str = "teammates"


@dataclass
class TwitchConfig:
    client_id: str
    client_secret: str
    broadcaster: str
    oauth_token: str
    webhook_url: str
    bot_nick: Optional[str] = None
    webhook_port: int = 8080
    subscribe_events: bool = False
    reminder_interval: int = 900

    @property
    def nickname(self) -> str:
        return self.bot_nick or self.broadcaster


@dataclass
class DiscordConfig:
    token: str
    announce_channel_id: int
    feed_channel_id: int


@dataclass
class TwitterConfig:
    api_key: str
    api_secret: str
    access_token: str
    access_secret: str


@dataclass
class BotConfig:
    database: DatabaseConfig
    twitch: TwitchConfig
    discord: DiscordConfig
    twitter: TwitterConfig


# ------------------------------------------------------------
# Parsing helpers
# ------------------------------------------------------------

def _parse_int(
    raw: Optional[str], default: int, *, key: str, minimum: Optional[int] = None
) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        log.warning(f"{key} must be an integer; defaulting to {default}")
        return default
    if minimum is not None and value < minimum:
        log.warning(f"{key} must be at least {minimum}; defaulting to {default}")
        return default
    return value


def _parse_bool(raw: Optional[str], default: bool, *, key: str) -> bool:
    if raw is None or not raw.strip():
        return default
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    log.warning(f"{key} must be a boolean; defaulting to {default}")
    return default


class _EnvReader:
    """Collects missing keys instead of failing on the first one."""

    def __init__(self, environ: Mapping[str, str]):
        self._environ = environ
        self.missing: List[str] = []

    def optional(self, key: str) -> Optional[str]:
        value = self._environ.get(key, "")
        value = value.strip() if isinstance(value, str) else ""
        return value or None

    def required(self, key: str) -> str:
        value = self.optional(key)
        if value is None:
            self.missing.append(key)
            return ""
        return value

    def required_id(self, key: str) -> int:
        value = self.required(key)
        if not value:
            return 0
        if not value.isdigit():
            raise ConfigError(f"{key} must be a numeric Discord id, got {value!r}")
        return int(value)


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------

def load_config(environ: Optional[Mapping[str, str]] = None) -> BotConfig:
    """
    Build the bot configuration from environment variables.

    When `environ` is omitted the process environment is used, after
    loading any .env file found by python-dotenv.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    env = _EnvReader(environ)

    database = DatabaseConfig(
        path=env.optional("BEASTIE_DB_PATH") or DatabaseConfig.path,
    )

    twitch = TwitchConfig(
        client_id=env.required("TWITCH_CLIENT_ID"),
        client_secret=env.required("TWITCH_CLIENT_SECRET"),
        broadcaster=env.required("TWITCH_BROADCASTER").lstrip("#").lower(),
        oauth_token=env.required("TWITCH_OAUTH_TOKEN"),
        webhook_url=env.required("TWITCH_WEBHOOK_URL"),
        bot_nick=env.optional("TWITCH_BOT_NICK"),
        webhook_port=_parse_int(
            env.optional("TWITCH_WEBHOOK_PORT"),
            8080,
            key="TWITCH_WEBHOOK_PORT",
            minimum=1,
        ),
        subscribe_events=_parse_bool(
            env.optional("TWITCH_SUBSCRIBE_EVENTS"), False, key="TWITCH_SUBSCRIBE_EVENTS"
        ),
        reminder_interval=_parse_int(
            env.optional("TWITCH_REMINDER_INTERVAL"),
            900,
            key="TWITCH_REMINDER_INTERVAL",
            minimum=1,
        ),
    )

    discord = DiscordConfig(
        token=env.required("DISCORD_TOKEN"),
        announce_channel_id=env.required_id("DISCORD_ANNOUNCE_CHANNEL_ID"),
        feed_channel_id=env.required_id("DISCORD_FEED_CHANNEL_ID"),
    )

    twitter = TwitterConfig(
        api_key=env.required("TWITTER_API_KEY"),
        api_secret=env.required("TWITTER_API_SECRET"),
        access_token=env.required("TWITTER_ACCESS_TOKEN"),
        access_secret=env.required("TWITTER_ACCESS_SECRET"),
    )

    if env.missing:
        raise ConfigError(
            "Missing required environment variables: " + ", ".join(env.missing)
        )

    log.info(
        f"Configuration loaded (broadcaster={twitch.broadcaster}, "
        f"db={database.path}, subscribe_events={twitch.subscribe_events})"
    )

    return BotConfig(
        database=database,
        twitch=twitch,
        discord=discord,
        twitter=twitter,
    )


def redacted(config: BotConfig) -> Dict[str, Dict[str, object]]:
    """Return a log-safe view of the configuration (secrets masked)."""
    return {
        "database": {"path": config.database.path},
        "twitch": {
            "broadcaster": config.twitch.broadcaster,
            "nickname": config.twitch.nickname,
            "webhook_url": config.twitch.webhook_url,
            "webhook_port": config.twitch.webhook_port,
            "subscribe_events": config.twitch.subscribe_events,
            "reminder_interval": config.twitch.reminder_interval,
        },
        "discord": {
            "announce_channel_id": config.discord.announce_channel_id,
            "feed_channel_id": config.discord.feed_channel_id,
        },
        "twitter": {"api_key_present": bool(config.twitter.api_key)},
    }
