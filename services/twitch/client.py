import asyncio
import itertools
from typing import Any, Optional

from core.events import PostEvent
from services.twitch.api.chat import TwitchChatClient
from services.twitch.models.message import TwitchChatMessage
from shared.config.bot import TwitchConfig
from shared.config.messages import MessageTemplates
from shared.logging.logger import get_logger

log = get_logger("twitch.client", runtime="twitch")


class TwitchClient:
    """
    Twitch chat adapter.

    Responsibilities:
    - Own the TwitchChatClient lifecycle (connect, read, shutdown)
    - Post bot notifications (end of stream, follows, subs) to chat
    - Run periodic reminder messages while the broadcaster is live
    - Answer built-in chat commands
    """

    def __init__(
        self,
        *,
        config: TwitchConfig,
        messages: MessageTemplates,
        chat: Optional[TwitchChatClient] = None,
    ):
        self.config = config
        self.messages = messages
        self.chat = chat or TwitchChatClient(
            token=config.oauth_token,
            nickname=config.nickname,
            channel=config.broadcaster,
        )

        self._reader_task: Optional[asyncio.Task] = None
        self._reminder_task: Optional[asyncio.Task] = None
        self._reminders = itertools.cycle(messages.reminders) if messages.reminders else None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        await self.chat.connect()
        if self._reader_task is None:
            self._reader_task = asyncio.create_task(
                self._read_loop(), name="twitch-chat-reader"
            )

    async def destroy(self) -> None:
        tasks = [t for t in (self._reader_task, self._reminder_task) if t]
        self.toggle_stream_intervals(False)

        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._reader_task = None
        self._reminder_task = None

        await self.chat.close()
        log.info("Twitch client stopped")

    # ------------------------------------------------------------------ #
    # Posting
    # ------------------------------------------------------------------ #

    async def post(self, event: PostEvent, payload: Any = None) -> None:
        if event is PostEvent.END_OF_STREAM:
            text = self.messages.render("end_of_stream")
        elif event is PostEvent.TWITCH_NEW_FOLLOW:
            text = self.messages.render("new_follow", name=payload)
        elif event is PostEvent.TWITCH_NEW_SUB:
            text = self.messages.render("new_sub", name=payload)
        else:
            raise ValueError(f"Unsupported Twitch post event: {event}")

        await self.chat.send_message(text)
        log.info(f"Posted {event.name} to Twitch chat")

    # ------------------------------------------------------------------ #
    # Stream intervals
    # ------------------------------------------------------------------ #

    @property
    def intervals_running(self) -> bool:
        return self._reminder_task is not None and not self._reminder_task.done()

    def toggle_stream_intervals(self, streaming: bool) -> None:
        """
        Start reminder messages while live, stop them when offline.
        Calling with the current state is a no-op.
        """
        if streaming:
            if self.intervals_running or self._reminders is None:
                return
            self._reminder_task = asyncio.create_task(
                self._reminder_loop(), name="twitch-stream-reminders"
            )
            log.info(
                f"Stream intervals started (every {self.config.reminder_interval}s)"
            )
            return

        if self.intervals_running:
            self._reminder_task.cancel()
            log.info("Stream intervals stopped")
        self._reminder_task = None

    async def _reminder_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.reminder_interval)
            text = next(self._reminders)
            try:
                await self.chat.send_message(text)
            except (RuntimeError, ConnectionError, OSError) as e:
                log.warning(f"Failed to post stream reminder: {e}")

    # ------------------------------------------------------------------ #
    # Chat commands
    # ------------------------------------------------------------------ #

    async def _read_loop(self) -> None:
        try:
            async for message in self.chat.iter_messages():
                await self.handle_message(message)
        except asyncio.CancelledError:
            raise
        except (ConnectionError, OSError) as e:
            log.error(f"Twitch chat read loop stopped: {e}")

    async def handle_message(self, message: TwitchChatMessage) -> None:
        command = message.command
        if command is None:
            return

        if command == "!ping":
            await self.chat.send_message("pong")
        elif command == "!socials" and self.messages.social_links:
            links = " | ".join(self.messages.social_links)
            await self.chat.send_message(self.messages.render("socials", links=links))
        else:
            return

        log.debug(f"Answered {command} for {message.username}")
