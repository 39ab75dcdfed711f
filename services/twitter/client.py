"""
Twitter client.

Posts live announcements and relays Discord feed messages to the
broadcaster's timeline. tweepy's Client is synchronous, so every request
runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Iterator, List, Mapping, Optional, Tuple

import tweepy

from core.events import PostEvent
from shared.config.bot import TwitterConfig
from shared.config.messages import MessageTemplates
from shared.logging.logger import get_logger
from shared.utils.links import twitch_url

log = get_logger("twitter.client")

MAX_TWEET_LENGTH = 280

# Twitter's weighted counting: these code points count 1, everything else
# (CJK, emoji, ...) counts 2, and every URL counts as a t.co link.
_LIGHT_RANGES = ((0, 4351), (8192, 8205), (8208, 8223), (8242, 8247))
TRANSFORMED_URL_LENGTH = 23
_URL_RE = re.compile(r"https?://\S+")
_ELLIPSIS = "..."


def _char_weight(ch: str) -> int:
    cp = ord(ch)
    for low, high in _LIGHT_RANGES:
        if low <= cp <= high:
            return 1
    return 2


def _segments(text: str) -> Iterator[Tuple[str, int]]:
    pos = 0
    for match in _URL_RE.finditer(text):
        for ch in text[pos:match.start()]:
            yield ch, _char_weight(ch)
        yield match.group(), TRANSFORMED_URL_LENGTH
        pos = match.end()
    for ch in text[pos:]:
        yield ch, _char_weight(ch)


def tweet_length(text: str) -> int:
    """Length of `text` as Twitter counts it."""
    return sum(weight for _, weight in _segments(text))


def _clamp(text: str, limit: int) -> str:
    text = text.strip()
    if tweet_length(text) <= limit:
        return text

    budget = limit - len(_ELLIPSIS)
    kept: List[str] = []
    used = 0
    for piece, weight in _segments(text):
        if used + weight > budget:
            break
        kept.append(piece)
        used += weight
    return "".join(kept).rstrip() + _ELLIPSIS


def clamp_tweet(text: str) -> str:
    return _clamp(text, MAX_TWEET_LENGTH)


def format_relay(content: str, attachment_urls: List[str]) -> str:
    """
    Build tweet text for a relayed Discord message. Attachment URLs are
    kept ahead of truncation so links survive long messages.
    """
    links = "\n".join(attachment_urls)
    if not links:
        return clamp_tweet(content)

    budget = MAX_TWEET_LENGTH - tweet_length(links) - 1
    if budget <= len(_ELLIPSIS):
        return clamp_tweet(links)

    return f"{_clamp(content, budget)}\n{links}".strip()


def create_twitter_client(config: TwitterConfig) -> tweepy.Client:
    return tweepy.Client(
        consumer_key=config.api_key,
        consumer_secret=config.api_secret,
        access_token=config.access_token,
        access_token_secret=config.access_secret,
    )


class TwitterClient:
    def __init__(
        self,
        *,
        config: TwitterConfig,
        messages: MessageTemplates,
        client: Optional[tweepy.Client] = None,
    ):
        self.messages = messages
        self._client = client or create_twitter_client(config)
        self._closed = False

    async def post(self, event: PostEvent, payload: Optional[Mapping[str, Any]] = None) -> None:
        if event is not PostEvent.TWITTER_LIVE:
            raise ValueError(f"Unsupported Twitter post event: {event}")

        stream = payload or {}
        text = self.messages.render(
            "twitter_live",
            display_name=stream.get("user_name") or stream.get("user_login") or "We",
            title=stream.get("title"),
            game=stream.get("game_name"),
            stream_id=stream.get("id"),
            url=twitch_url(stream.get("user_login")),
        )
        await self._tweet(text)

    async def post_message(self, message: Any) -> None:
        """Relay a Discord message's text and attachments."""
        attachments = [
            self.messages.render("relay_attachment", url=a.url)
            for a in getattr(message, "attachments", None) or []
        ]
        text = format_relay(message.content or "", attachments)
        if not text:
            log.debug("Skipping relay of empty Discord message")
            return
        await self._tweet(text)

    async def destroy(self) -> None:
        self._closed = True
        log.info("Twitter client closed")

    async def _tweet(self, text: str) -> None:
        if self._closed:
            raise RuntimeError("Twitter client is closed")

        response = await asyncio.to_thread(self._client.create_tweet, text=clamp_tweet(text))
        tweet_id = (getattr(response, "data", None) or {}).get("id")
        log.info(f"Tweet posted (id={tweet_id})")
