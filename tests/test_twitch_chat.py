"""Tests for Twitch IRC parsing and the chat adapter"""

import asyncio

import pytest

from core.events import PostEvent
from services.twitch.api.chat import (
    normalize_channel,
    normalize_token,
    parse_privmsg,
)
from services.twitch.client import TwitchClient
from services.twitch.models.message import TwitchChatMessage
from shared.config.messages import MessageTemplates
from fakes import make_config, run

TAGGED_LINE = (
    "@badges=broadcaster/1,subscriber/12;display-name=TeamTALIMA;"
    "tmi-sent-ts=1700000000000;user-id=123 "
    ":teamtalima!teamtalima@teamtalima.tmi.twitch.tv PRIVMSG #teamtalima :!ping now"
)


class TestParsePrivmsg:
    def test_parses_tagged_line(self):
        msg = parse_privmsg(TAGGED_LINE)

        assert msg.username == "teamtalima"
        assert msg.channel == "teamtalima"
        assert msg.text == "!ping now"
        assert msg.user_id == "123"
        assert msg.badges == ["broadcaster/1", "subscriber/12"]
        assert msg.timestamp.year == 2023

    def test_parses_untagged_line(self):
        msg = parse_privmsg(":viewer!viewer@viewer.tmi.twitch.tv PRIVMSG #chan :hi there")

        assert msg.username == "viewer"
        assert msg.text == "hi there"
        assert msg.badges == []
        assert msg.timestamp is None

    @pytest.mark.parametrize(
        "line",
        [
            ":tmi.twitch.tv 001 beastie :Welcome, GLHF!",
            ":beastie!beastie@beastie.tmi.twitch.tv JOIN #chan",
            "PRIVMSG",
        ],
    )
    def test_ignores_other_commands(self, line):
        assert parse_privmsg(line) is None


class TestChatMessage:
    def _msg(self, text):
        return TwitchChatMessage(raw=text, username="u", channel="c", text=text)

    def test_command_is_first_word_lowercased(self):
        assert self._msg("!PING please").command == "!ping"

    @pytest.mark.parametrize("text", ["hello", "!", "  ", "ping!"])
    def test_non_commands(self, text):
        assert self._msg(text).command is None


class TestNormalizers:
    def test_token_gets_oauth_prefix(self):
        assert normalize_token(" abc ") == "oauth:abc"
        assert normalize_token("oauth:abc") == "oauth:abc"

    def test_channel_is_stripped_and_lowered(self):
        assert normalize_channel("#TeamTALIMA ") == "teamtalima"


class FakeChat:
    def __init__(self, error=None):
        self.sent = []
        self.error = error
        self.closed = False
        self.connected = False

    async def connect(self):
        self.connected = True

    async def close(self):
        self.closed = True

    async def send_message(self, text):
        self.sent.append(text)
        if self.error:
            raise self.error

    async def iter_messages(self):
        return
        yield


def make_client(chat=None, reminders=None, **twitch_overrides):
    config = make_config(**twitch_overrides).twitch
    messages = MessageTemplates(
        reminders=reminders if reminders is not None else ["follow!", "discord!"],
        social_links=["twitter.com/x", "discord.gg/y"],
    )
    return TwitchClient(config=config, messages=messages, chat=chat or FakeChat())


class TestTwitchClientPost:
    def test_end_of_stream(self):
        client = make_client()

        run(client.post(PostEvent.END_OF_STREAM))

        assert client.chat.sent == [MessageTemplates().render("end_of_stream")]

    def test_new_follow_mentions_follower(self):
        client = make_client()

        run(client.post(PostEvent.TWITCH_NEW_FOLLOW, "viewer42"))

        assert "viewer42" in client.chat.sent[0]

    def test_new_sub_mentions_subscriber(self):
        client = make_client()

        run(client.post(PostEvent.TWITCH_NEW_SUB, "subber"))

        assert "subber" in client.chat.sent[0]

    def test_rejects_other_platform_events(self):
        client = make_client()

        with pytest.raises(ValueError):
            run(client.post(PostEvent.TWITTER_LIVE))

    def test_send_failure_propagates(self):
        client = make_client(chat=FakeChat(error=ConnectionError("down")))

        with pytest.raises(ConnectionError):
            run(client.post(PostEvent.END_OF_STREAM))


class TestStreamIntervals:
    def test_reminders_rotate_while_live(self):
        client = make_client(reminder_interval=0)

        async def scenario():
            client.toggle_stream_intervals(True)
            client.toggle_stream_intervals(True)
            for _ in range(10):
                await asyncio.sleep(0)
            running = client.intervals_running
            client.toggle_stream_intervals(False)
            await asyncio.sleep(0)
            return running

        assert run(scenario()) is True
        assert client.intervals_running is False
        assert client.chat.sent[:2] == ["follow!", "discord!"]

    def test_no_reminders_configured_is_noop(self):
        client = make_client(reminders=[])

        async def scenario():
            client.toggle_stream_intervals(True)
            return client.intervals_running

        assert run(scenario()) is False

    def test_reminder_failures_do_not_stop_loop(self):
        client = make_client(chat=FakeChat(error=ConnectionError("down")), reminder_interval=0)

        async def scenario():
            client.toggle_stream_intervals(True)
            for _ in range(10):
                await asyncio.sleep(0)
            running = client.intervals_running
            client.toggle_stream_intervals(False)
            return running

        assert run(scenario()) is True
        assert len(client.chat.sent) >= 2

    def test_destroy_waits_for_reminder_task(self):
        client = make_client(reminder_interval=60)

        async def scenario():
            client.toggle_stream_intervals(True)
            task = client._reminder_task
            await asyncio.sleep(0)
            await client.destroy()
            return task

        task = run(scenario())

        assert task.done()
        assert task.cancelled()
        assert client.intervals_running is False
        assert client.chat.closed is True


class TestChatCommands:
    def _msg(self, text):
        return TwitchChatMessage(raw=text, username="viewer", channel="c", text=text)

    def test_ping(self):
        client = make_client()

        run(client.handle_message(self._msg("!ping")))

        assert client.chat.sent == ["pong"]

    def test_socials(self):
        client = make_client()

        run(client.handle_message(self._msg("!socials")))

        assert client.chat.sent == ["Find us around the web: twitter.com/x | discord.gg/y"]

    def test_unknown_command_and_chatter_ignored(self):
        client = make_client()

        run(client.handle_message(self._msg("!lurk")))
        run(client.handle_message(self._msg("hello")))

        assert client.chat.sent == []


class TestLifecycle:
    def test_connect_then_destroy(self):
        client = make_client()

        async def scenario():
            await client.connect()
            client.toggle_stream_intervals(True)
            await client.destroy()

        run(scenario())

        assert client.chat.connected is True
        assert client.chat.closed is True
        assert client.intervals_running is False
