"""
BeastieBot orchestrator.

Builds every platform adapter in dependency order, owns the BotState and
routes inbound events to outbound posts:

    webhooks / discord  ->  events queue  ->  BeastieBot.dispatch  ->  post()

Startup order:
    database check -> twitch chat -> broadcaster lookup -> webhooks
    -> discord -> twitter -> state hydration

Every downstream post is best-effort: failures are logged as warnings and
never reach the caller. Shutdown tears all adapters down in parallel and
raises the first failure only once every teardown has finished.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any, Awaitable, Optional, Set

from core.errors import StartupError
from core.events import (
    BotEvent,
    DiscordMessageReceived,
    PostEvent,
    StreamChanged,
    UserFollowed,
    UserSubscribed,
)
from core.state import BotState
from core.stream_change import StreamChangeResult, evaluate_stream_change
from services.db.teammates import check_teammate_table
from services.discord.client import DiscordClient
from services.twitch.api.helix import TwitchHelixAPI
from services.twitch.client import TwitchClient
from services.twitch.webhooks import TwitchWebhookServer
from services.twitter.client import TwitterClient
from shared.config.bot import BotConfig
from shared.config.messages import MessageTemplates, load_messages
from shared.logging.logger import get_logger

log = get_logger("core.bot")


class BeastieBot:
    def __init__(
        self,
        *,
        config: BotConfig,
        messages: Optional[MessageTemplates] = None,
        state: Optional[BotState] = None,
        events: Optional["asyncio.Queue[BotEvent]"] = None,
    ):
        self.config = config
        self.messages = messages or MessageTemplates()
        self.state = state or BotState()
        self.events: "asyncio.Queue[BotEvent]" = events or asyncio.Queue()

        self.helix: Optional[TwitchHelixAPI] = None
        self.twitch_client: Optional[TwitchClient] = None
        self.twitch_webhooks: Optional[TwitchWebhookServer] = None
        self.discord_client: Optional[DiscordClient] = None
        self.twitter_client: Optional[TwitterClient] = None

        self.broadcaster_id: Optional[str] = None

        self._pending_posts: Set[asyncio.Task] = set()

    # --------------------------------------------------
    # Construction
    # --------------------------------------------------

    @classmethod
    async def create(
        cls,
        config: BotConfig,
        *,
        messages: Optional[MessageTemplates] = None,
    ) -> "BeastieBot":
        if not await check_teammate_table(
            config.database.path, table=config.database.teammate_table
        ):
            raise StartupError("Issue checking on database, see log")

        bot = cls(config=config, messages=messages or load_messages())

        try:
            bot.helix = TwitchHelixAPI(
                client_id=config.twitch.client_id,
                client_secret=config.twitch.client_secret,
            )
            bot.twitch_client = bot.init_twitch()
            bot.broadcaster_id = await bot.fetch_broadcaster_id()
            bot.twitch_webhooks = await bot.init_twitch_webhooks()
            bot.discord_client = bot.init_discord()
            bot.twitter_client = bot.init_twitter()
            bot.state = await bot.init_state()
        except BaseException:
            await bot._abort_startup()
            raise

        log.info("init finished")
        return bot

    def init_twitch(self) -> TwitchClient:
        twitch_client = TwitchClient(config=self.config.twitch, messages=self.messages)
        log.info("twitch init finished")
        return twitch_client

    async def fetch_broadcaster_id(self) -> str:
        profile = await self.helix.get_profile(self.config.twitch.broadcaster)
        if not profile or not profile.get("id"):
            raise StartupError(
                f"Twitch broadcaster '{self.config.twitch.broadcaster}' not found"
            )
        log.info(f"Broadcaster resolved: {profile.get('login')} (id={profile['id']})")
        return str(profile["id"])

    async def init_twitch_webhooks(self) -> TwitchWebhookServer:
        twitch_webhooks = TwitchWebhookServer(
            config=self.config.twitch,
            helix=self.helix,
            events=self.events,
        )
        # Assigned before connecting so a failed connect is still torn down
        self.twitch_webhooks = twitch_webhooks
        await twitch_webhooks.connect(self.broadcaster_id)
        log.info("twitch webhooks init finished")
        return twitch_webhooks

    def init_discord(self) -> DiscordClient:
        discord_client = DiscordClient(
            config=self.config.discord,
            messages=self.messages,
            events=self.events,
        )
        log.info("discord init finished")
        return discord_client

    def init_twitter(self) -> TwitterClient:
        twitter_client = TwitterClient(config=self.config.twitter, messages=self.messages)
        log.info("twitter init finished")
        return twitter_client

    async def init_state(self) -> BotState:
        stream = await self.helix.get_stream(self.broadcaster_id)
        state = BotState.from_stream(stream)
        log.info(f"state init finished {state.snapshot()}")
        return state

    async def _abort_startup(self) -> None:
        try:
            await self.destroy()
        except Exception as e:
            log.warning(f"Teardown after failed startup also failed: {e}")

    # --------------------------------------------------
    # Lifecycle
    # --------------------------------------------------

    async def start(self) -> None:
        await self.twitch_client.connect()
        await self.discord_client.login()
        self.twitch_client.toggle_stream_intervals(self.state.is_streaming)
        log.info(f"Beastie started {self.state.snapshot()}")

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Consume inbound events until `stop_event` is set.
        """
        stop_task = asyncio.create_task(stop_event.wait())
        try:
            while not stop_event.is_set():
                get_task = asyncio.create_task(self.events.get())
                done, _ = await asyncio.wait(
                    {get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if get_task not in done:
                    get_task.cancel()
                    break

                await self.dispatch(get_task.result())
        finally:
            stop_task.cancel()

    async def destroy(self) -> None:
        await self.flush_posts()

        adapters = [
            ("twitch", self.twitch_client),
            ("twitch webhooks", self.twitch_webhooks),
            ("discord", self.discord_client),
            ("twitter", self.twitter_client),
        ]
        adapters = [(name, adapter) for name, adapter in adapters if adapter is not None]

        try:
            results = await asyncio.gather(
                *(adapter.destroy() for _, adapter in adapters),
                return_exceptions=True,
            )
        finally:
            self.twitch_client = None
            self.twitch_webhooks = None
            self.discord_client = None
            self.twitter_client = None

        failures = [
            (name, result)
            for (name, _), result in zip(adapters, results)
            if isinstance(result, BaseException)
        ]
        for name, error in failures:
            log.error(f"{name} teardown failed: {error!r}")

        if failures:
            raise failures[0][1]

        log.info("destroy finished")

    # --------------------------------------------------
    # Event routing
    # --------------------------------------------------

    async def dispatch(self, event: BotEvent) -> None:
        try:
            if isinstance(event, StreamChanged):
                await self.on_stream_change(event.stream)
            elif isinstance(event, UserFollowed):
                await self.on_follow(event)
            elif isinstance(event, UserSubscribed):
                await self.on_subscribe(event)
            elif isinstance(event, DiscordMessageReceived):
                self.on_discord_message(event.message)
            else:
                log.warning(f"Dropping unknown event: {event!r}")
        except Exception as e:
            log.error(f"Handler for {type(event).__name__} failed: {e!r}")

    async def on_stream_change(self, stream: Optional[dict]) -> StreamChangeResult:
        result = evaluate_stream_change(stream, self.state.cur_stream_id)
        self.state.apply(result)

        if result.new_stream:
            self._post_later(
                self.twitter_client, PostEvent.TWITTER_LIVE, stream, "twitter"
            )
            self._post_later(
                self.discord_client, PostEvent.DISCORD_LIVE, stream, "discord"
            )
        elif result.ended:
            try:
                await self.twitch_client.post(PostEvent.END_OF_STREAM, None)
            except Exception as e:
                log.warning(f"Failed to post end-of-stream message: {e}")

        if self.twitch_client is not None:
            self.twitch_client.toggle_stream_intervals(self.state.is_streaming)

        return result

    async def on_follow(self, event: UserFollowed) -> None:
        try:
            await self.twitch_client.post(PostEvent.TWITCH_NEW_FOLLOW, event.user_name)
        except Exception as e:
            log.warning(f"Failed to post follow message: {e}")

    async def on_subscribe(self, event: UserSubscribed) -> None:
        try:
            await self.twitch_client.post(PostEvent.TWITCH_NEW_SUB, event.user_name)
        except Exception as e:
            log.warning(f"Failed to post subscription message: {e}")

    def on_discord_message(self, message: Any) -> None:
        if message.channel.id != self.config.discord.feed_channel_id:
            return
        if self.twitter_client is None:
            return
        if self.discord_client is not None and self.discord_client.is_own_message(message):
            return

        self._spawn(self.twitter_client.post_message(message), "twitter relay of Discord message")

    # --------------------------------------------------
    # Fire-and-forget posts
    # --------------------------------------------------

    def _post_later(self, adapter, event: PostEvent, payload: Any, platform: str) -> None:
        label = f"{platform} POST_EVENT.{event.name}"
        if adapter is None:
            log.warning(f"Skipping {label}: client not initialized")
            return
        self._spawn(adapter.post(event, payload), label)

    def _spawn(self, coro: Awaitable[None], label: str) -> None:
        task = asyncio.ensure_future(coro)
        self._pending_posts.add(task)
        task.add_done_callback(partial(self._on_post_done, label))

    def _on_post_done(self, label: str, task: asyncio.Task) -> None:
        self._pending_posts.discard(task)
        if task.cancelled():
            log.warning(f"Cancelled {label}")
            return
        error = task.exception()
        if error is not None:
            log.warning(f"Failed to complete {label}: {error}")

    async def flush_posts(self) -> None:
        """Wait for every in-flight fire-and-forget post to settle."""
        if self._pending_posts:
            await asyncio.gather(*list(self._pending_posts), return_exceptions=True)
