"""Tests for the Twitter adapter"""

from types import SimpleNamespace

import pytest

from core.events import PostEvent
from services.twitter.client import (
    MAX_TWEET_LENGTH,
    TwitterClient,
    clamp_tweet,
    format_relay,
    tweet_length,
)
from shared.config.messages import MessageTemplates
from fakes import make_config, run


class FakeTweepy:
    def __init__(self):
        self.tweets = []

    def create_tweet(self, text):
        self.tweets.append(text)
        return SimpleNamespace(data={"id": str(len(self.tweets))})


def make_client():
    return TwitterClient(
        config=make_config().twitter,
        messages=MessageTemplates(),
        client=FakeTweepy(),
    )


class TestFormatting:
    def test_short_text_unchanged(self):
        assert clamp_tweet("  hello  ") == "hello"

    def test_long_text_is_clamped(self):
        text = clamp_tweet("x" * 400)

        assert len(text) == MAX_TWEET_LENGTH
        assert text.endswith("...")

    def test_relay_keeps_attachment_links(self):
        link = "https://cdn.discordapp.com/a.png"
        text = format_relay("y" * 400, [link])

        assert tweet_length(text) <= MAX_TWEET_LENGTH
        assert text.endswith(link)

    def test_wide_characters_count_double(self):
        text = clamp_tweet("日" * 200)

        assert tweet_length(text) <= MAX_TWEET_LENGTH
        assert text == "日" * 138 + "..."

    def test_urls_count_as_short_links(self):
        assert tweet_length("see https://example.com/" + "a" * 100) == 4 + 23
        assert tweet_length("🎮 ok") == 5

    def test_wide_relay_keeps_attachment_links(self):
        link = "https://cdn.discordapp.com/a.png"
        text = format_relay("あ" * 200, [link])

        assert tweet_length(text) <= MAX_TWEET_LENGTH
        assert text.endswith(link)

    def test_relay_without_attachments(self):
        assert format_relay("new devlog is up", []) == "new devlog is up"


class TestTwitterClient:
    def test_live_post_uses_stream_details(self):
        client = make_client()
        stream = {"id": "123", "user_login": "teamtalima", "user_name": "TeamTALIMA", "title": "Pixel art"}

        run(client.post(PostEvent.TWITTER_LIVE, stream))

        tweet = client._client.tweets[0]
        assert "TeamTALIMA" in tweet
        assert "Pixel art" in tweet
        assert "https://twitch.tv/teamtalima" in tweet

    def test_live_post_without_details(self):
        client = make_client()

        run(client.post(PostEvent.TWITTER_LIVE))

        assert "https://twitch.tv" in client._client.tweets[0]

    def test_relays_discord_message(self):
        client = make_client()
        message = SimpleNamespace(
            content="New devlog!",
            attachments=[SimpleNamespace(url="https://cdn.discordapp.com/a.png")],
        )

        run(client.post_message(message))

        assert client._client.tweets == ["New devlog!\nhttps://cdn.discordapp.com/a.png"]

    def test_empty_message_is_skipped(self):
        client = make_client()

        run(client.post_message(SimpleNamespace(content="", attachments=[])))

        assert client._client.tweets == []

    def test_rejects_other_events(self):
        with pytest.raises(ValueError):
            run(make_client().post(PostEvent.DISCORD_LIVE))

    def test_post_after_destroy_raises(self):
        client = make_client()
        run(client.destroy())

        with pytest.raises(RuntimeError):
            run(client.post(PostEvent.TWITTER_LIVE))
