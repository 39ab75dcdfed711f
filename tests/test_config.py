"""Tests for environment configuration and message templates"""

import json

import pytest

from core.errors import ConfigError
from shared.config.bot import load_config, redacted
from shared.config.messages import DEFAULT_REMINDERS, MessageTemplates, load_messages
from fakes import BASE_ENV


class TestLoadConfig:
    def test_defaults(self):
        config = load_config(dict(BASE_ENV))

        assert config.database.path == "data/beastie.db"
        assert config.database.teammate_table == "teammates"
        assert config.twitch.broadcaster == "teamtalima"
        assert config.twitch.nickname == "teamtalima"
        assert config.twitch.webhook_port == 8080
        assert config.twitch.subscribe_events is False
        assert config.twitch.reminder_interval == 900
        assert config.discord.announce_channel_id == 111
        assert config.discord.feed_channel_id == 222

    def test_optional_overrides(self):
        env = dict(
            BASE_ENV,
            BEASTIE_DB_PATH="/tmp/b.db",
            TWITCH_BOT_NICK="beastie",
            TWITCH_WEBHOOK_PORT="9000",
            TWITCH_SUBSCRIBE_EVENTS="yes",
            TWITCH_REMINDER_INTERVAL="60",
        )

        config = load_config(env)

        assert config.database.path == "/tmp/b.db"
        assert config.twitch.nickname == "beastie"
        assert config.twitch.webhook_port == 9000
        assert config.twitch.subscribe_events is True
        assert config.twitch.reminder_interval == 60

    def test_bad_numbers_and_bools_fall_back(self):
        env = dict(BASE_ENV, TWITCH_WEBHOOK_PORT="http", TWITCH_SUBSCRIBE_EVENTS="maybe")

        config = load_config(env)

        assert config.twitch.webhook_port == 8080
        assert config.twitch.subscribe_events is False

    @pytest.mark.parametrize("raw", ["0", "-5"])
    def test_non_positive_reminder_interval_falls_back(self, raw):
        config = load_config(dict(BASE_ENV, TWITCH_REMINDER_INTERVAL=raw))

        assert config.twitch.reminder_interval == 900

    def test_non_positive_webhook_port_falls_back(self):
        config = load_config(dict(BASE_ENV, TWITCH_WEBHOOK_PORT="0"))

        assert config.twitch.webhook_port == 8080

    def test_reports_every_missing_key(self):
        env = dict(BASE_ENV)
        del env["DISCORD_TOKEN"]
        env["TWITTER_API_KEY"] = "   "

        with pytest.raises(ConfigError) as excinfo:
            load_config(env)

        assert "DISCORD_TOKEN" in str(excinfo.value)
        assert "TWITTER_API_KEY" in str(excinfo.value)

    def test_non_numeric_channel_id(self):
        env = dict(BASE_ENV, DISCORD_FEED_CHANNEL_ID="general")

        with pytest.raises(ConfigError, match="DISCORD_FEED_CHANNEL_ID"):
            load_config(env)

    def test_redacted_hides_secrets(self):
        view = redacted(load_config(dict(BASE_ENV)))

        assert "secret" not in json.dumps(view)
        assert "discord-token" not in json.dumps(view)


class TestMessageTemplates:
    def test_render_fills_fields(self):
        text = MessageTemplates().render("new_follow", name="viewer42")

        assert "viewer42" in text

    def test_missing_fields_render_empty(self):
        text = MessageTemplates({"twitter_live": "{display_name} live: {title}"}).render(
            "twitter_live", display_name="TeamTALIMA"
        )

        assert text == "TeamTALIMA live:"

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            MessageTemplates().render("nope")

    def test_load_overrides_from_file(self, tmp_path):
        path = tmp_path / "messages.json"
        path.write_text(
            json.dumps(
                {
                    "new_follow": "Hi {name}!",
                    "end_of_stream": 42,
                    "reminders": ["one", "  ", "two"],
                    "social_links": "not-a-list",
                }
            ),
            encoding="utf-8",
        )

        messages = load_messages(path)

        assert messages.render("new_follow", name="x") == "Hi x!"
        assert "stream has ended" in messages.render("end_of_stream")
        assert messages.reminders == ["one", "two"]
        assert messages.social_links == []

    def test_missing_or_invalid_file_uses_defaults(self, tmp_path):
        bad = tmp_path / "messages.json"
        bad.write_text("{not json", encoding="utf-8")

        for path in (tmp_path / "absent.json", bad):
            messages = load_messages(path)
            assert messages.reminders == DEFAULT_REMINDERS
