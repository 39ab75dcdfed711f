"""
Twitch EventSub webhook listener.

Wraps twitchAPI's EventSubWebhook, which owns the HTTP listener,
signature verification and subscription bookkeeping. Notifications are
translated into typed bot events and placed on the bot's inbound queue:

- stream.online   -> StreamChanged(stream={...})
- stream.offline  -> StreamChanged(stream=None)
- channel.follow  -> UserFollowed
- channel.subscribe (opt-in) -> UserSubscribed
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from twitchAPI.eventsub.webhook import EventSubWebhook
from twitchAPI.twitch import Twitch

from core.errors import TwitchAPIError
from core.events import BotEvent, StreamChanged, UserFollowed, UserSubscribed
from services.twitch.api.helix import TwitchHelixAPI
from shared.config.bot import TwitchConfig
from shared.logging.logger import get_logger

log = get_logger("twitch.webhooks", runtime="twitch")


class TwitchWebhookServer:
    def __init__(
        self,
        *,
        config: TwitchConfig,
        helix: TwitchHelixAPI,
        events: "asyncio.Queue[BotEvent]",
    ):
        self.config = config
        self.helix = helix
        self.events = events

        self.broadcaster_id: Optional[str] = None
        self.subscription_ids: List[str] = []

        self._twitch: Optional[Twitch] = None
        self._eventsub: Optional[EventSubWebhook] = None
        # stream.online/offline are queued in arrival order even though
        # online waits on a Helix lookup
        self._stream_lock = asyncio.Lock()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self, broadcaster_id: str) -> None:
        if self._eventsub is not None:
            log.debug("Webhook listener already connected")
            return

        self.broadcaster_id = broadcaster_id

        self._twitch = await Twitch(self.config.client_id, self.config.client_secret)
        self._eventsub = EventSubWebhook(
            self.config.webhook_url,
            self.config.webhook_port,
            self._twitch,
            callback_loop=asyncio.get_running_loop(),
        )

        # Subscriptions left over from a previous run would double-deliver
        await self._eventsub.unsubscribe_all()
        self._eventsub.start()
        log.info(
            f"EventSub listener started on port {self.config.webhook_port} "
            f"(callback={self.config.webhook_url})"
        )

        self.subscription_ids.append(
            await self._eventsub.listen_stream_online(broadcaster_id, self._on_stream_online)
        )
        self.subscription_ids.append(
            await self._eventsub.listen_stream_offline(broadcaster_id, self._on_stream_offline)
        )
        self.subscription_ids.append(
            await self._eventsub.listen_channel_follow_v2(
                broadcaster_id, broadcaster_id, self._on_follow
            )
        )

        if self.config.subscribe_events:
            self.subscription_ids.append(
                await self._eventsub.listen_channel_subscribe(
                    broadcaster_id, self._on_subscribe
                )
            )
        else:
            log.info("Subscriber notifications disabled (TWITCH_SUBSCRIBE_EVENTS=false)")

        log.info(
            f"Subscribed to {len(self.subscription_ids)} EventSub topic(s) "
            f"for broadcaster {broadcaster_id}"
        )

    async def destroy(self) -> None:
        try:
            if self._eventsub is not None:
                await self._eventsub.stop()
                log.info("EventSub listener stopped")
        finally:
            if self._twitch is not None:
                await self._twitch.close()
            self._eventsub = None
            self._twitch = None
            self.subscription_ids.clear()

    # ------------------------------------------------------------------ #
    # Notification callbacks
    # ------------------------------------------------------------------ #

    def _emit(self, event: BotEvent) -> None:
        self.events.put_nowait(event)
        log.debug(f"Queued '{event.topic.value}' event")

    async def _on_stream_online(self, data: Any) -> None:
        stream = self._stream_from_notification(data.event)
        async with self._stream_lock:
            details = await self._lookup_stream(stream["user_id"])

            if details and str(details.get("id")) == stream["id"]:
                stream.update(details)
                stream["id"] = str(details["id"])

            log.info(f"Stream online (id={stream['id']}, type={stream.get('type')})")
            self._emit(StreamChanged(stream=stream))

    async def _on_stream_offline(self, data: Any) -> None:
        async with self._stream_lock:
            log.info(f"Stream offline ({data.event.broadcaster_user_login})")
            self._emit(StreamChanged(stream=None))

    async def _on_follow(self, data: Any) -> None:
        event = data.event
        log.info(f"New follower: {event.user_name}")
        self._emit(UserFollowed(user_name=event.user_name, user_id=event.user_id))

    async def _on_subscribe(self, data: Any) -> None:
        event = data.event
        log.info(f"New subscriber: {event.user_name} (tier={event.tier})")
        self._emit(
            UserSubscribed(user_name=event.user_name, user_id=event.user_id, tier=event.tier)
        )

    # ------------------------------------------------------------------ #

    @staticmethod
    def _stream_from_notification(event: Any) -> Dict[str, Any]:
        started_at = getattr(event, "started_at", None)
        if hasattr(started_at, "isoformat"):
            started_at = started_at.isoformat()
        return {
            "id": str(event.id),
            "type": event.type,
            "user_id": event.broadcaster_user_id,
            "user_login": event.broadcaster_user_login,
            "user_name": event.broadcaster_user_name,
            "started_at": started_at,
        }

    async def _lookup_stream(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.helix.get_stream(user_id)
        except TwitchAPIError as e:
            log.warning(f"Stream lookup failed; forwarding bare notification: {e}")
            return None
