"""Typed events exchanged between adapters and the bot.

Inbound events are placed on the bot's queue by the webhook listener and
the Discord client. PostEvent names the outbound notification kinds each
adapter's post() understands.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class PostEvent(Enum):
    TWITTER_LIVE = "twitter_live"
    DISCORD_LIVE = "discord_live"
    END_OF_STREAM = "end_of_stream"
    TWITCH_NEW_FOLLOW = "twitch_new_follow"
    TWITCH_NEW_SUB = "twitch_new_sub"


class EventTopic(str, Enum):
    STREAM_CHANGED = "stream changed"
    USERS_FOLLOWS = "users follows"
    SUBSCRIPTIONS = "subscriptions"
    DISCORD_MESSAGE = "discord message"


@dataclass(frozen=True)
class StreamChanged:
    # None means the broadcaster went offline
    stream: Optional[Dict[str, Any]] = None

    topic = EventTopic.STREAM_CHANGED


@dataclass(frozen=True)
class UserFollowed:
    user_name: str
    user_id: Optional[str] = None

    topic = EventTopic.USERS_FOLLOWS


@dataclass(frozen=True)
class UserSubscribed:
    user_name: str
    user_id: Optional[str] = None
    tier: Optional[str] = None

    topic = EventTopic.SUBSCRIPTIONS


@dataclass(frozen=True)
class DiscordMessageReceived:
    message: Any

    topic = EventTopic.DISCORD_MESSAGE


BotEvent = Union[StreamChanged, UserFollowed, UserSubscribed, DiscordMessageReceived]
