"""
Discord Client

This module owns the Discord connection itself.

Responsibilities:
- log in and keep the gateway connection running in the background
- post live announcements to the announce channel
- forward every incoming message to the bot as DiscordMessageReceived

IMPORTANT:
- This client MUST NOT create its own event loop
- Message routing decisions belong to BeastieBot, not this client
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import discord

from core.events import BotEvent, DiscordMessageReceived, PostEvent
from services.discord.embeds import live_embed
from shared.config.bot import DiscordConfig
from shared.config.messages import MessageTemplates
from shared.logging.logger import get_logger
from shared.utils.links import twitch_url

# NOTE: routed to Discord runtime log file
log = get_logger("discord.client", runtime="discord")


class DiscordClient:
    """
    Thin wrapper around discord.Client.

    This class provides:
    - async login() / destroy()
    - post(event, payload) for outbound announcements
    - lifecycle event logging
    """

    def __init__(
        self,
        *,
        config: DiscordConfig,
        messages: MessageTemplates,
        events: "asyncio.Queue[BotEvent]",
    ):
        self.config = config
        self.messages = messages
        self.events = events

        self._connect_task: Optional[asyncio.Task] = None
        self.client = self._build_client()

    # --------------------------------------------------

    def _build_client(self) -> discord.Client:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.messages = True
        intents.message_content = True  # relayed to Twitter

        client = discord.Client(intents=intents)

        @client.event
        async def on_ready():
            log.info(
                f"Discord connected as {client.user} "
                f"(id={client.user.id}) "
                f"guilds={len(client.guilds)}"
            )

        @client.event
        async def on_resumed():
            log.info("Discord connection resumed")

        @client.event
        async def on_disconnect():
            log.warning("Discord connection lost")

        @client.event
        async def on_message(message: discord.Message):
            self.events.put_nowait(DiscordMessageReceived(message=message))

        return client

    # --------------------------------------------------

    async def login(self) -> None:
        """
        Authenticate, then run the gateway connection as a background task.
        """
        if self._connect_task is not None:
            raise RuntimeError("Discord client already logged in")

        log.info("Logging in to Discord")
        await self.client.login(self.config.token)
        self._connect_task = asyncio.create_task(
            self._run_gateway(), name="discord-gateway"
        )

    async def _run_gateway(self) -> None:
        try:
            await self.client.connect()
        except asyncio.CancelledError:
            log.info("Discord gateway task cancelled")
            raise
        except discord.DiscordException as e:
            log.error(f"Discord gateway crashed: {e}")
            raise
        finally:
            log.info("Discord gateway stopped")

    async def destroy(self) -> None:
        """
        Close the Discord connection and wait for the gateway task to end.
        """
        log.info("Closing Discord connection")
        await self.client.close()

        task, self._connect_task = self._connect_task, None
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    # --------------------------------------------------

    def is_own_message(self, message: Any) -> bool:
        user = self.client.user
        return user is not None and getattr(message.author, "id", None) == user.id

    async def post(self, event: PostEvent, payload: Optional[Mapping[str, Any]] = None) -> None:
        if event is not PostEvent.DISCORD_LIVE:
            raise ValueError(f"Unsupported Discord post event: {event}")

        stream = payload or {}
        display_name = stream.get("user_name") or stream.get("user_login") or "We"
        url = twitch_url(stream.get("user_login"))

        channel = await self._announce_channel()
        await channel.send(
            content=self.messages.render("discord_live", display_name=display_name, url=url),
            embed=live_embed(
                self.messages.render("discord_live_embed_title", display_name=display_name),
                stream,
            ),
        )
        log.info(f"Posted live announcement to channel {channel.id}")

    async def _announce_channel(self):
        channel_id = self.config.announce_channel_id
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        return channel
