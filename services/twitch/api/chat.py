import asyncio
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict, Optional, Tuple

from services.twitch.models.message import TwitchChatMessage
from shared.logging.logger import get_logger

log = get_logger("twitch.chat", runtime="twitch")

# Twitch drops PRIVMSG bodies longer than this
MAX_MESSAGE_LENGTH = 500


class TwitchChatClient:
    """
    Minimal Twitch IRC-over-TLS client used to post to the broadcaster's chat.

    - Connection lifecycle is owned by TwitchClient.
    - Sends are serialized so concurrent posts never interleave bytes.
    """

    HOST = "irc.chat.twitch.tv"
    PORT = 6697

    def __init__(self, token: str, nickname: str, channel: str):
        self.token = normalize_token(token)
        self.nickname = nickname.lower()
        self.channel = normalize_channel(channel)

        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None

        self._send_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self.writer is not None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def connect(self) -> None:
        if self.connected:
            log.debug("TwitchChatClient already connected")
            return

        log.info(
            f"Connecting to Twitch IRC ({self.HOST}:{self.PORT}) "
            f"as nick={self.nickname} channel=#{self.channel}"
        )
        self.reader, self.writer = await asyncio.open_connection(
            self.HOST, self.PORT, ssl=True
        )

        await self._send_raw(f"PASS {self.token}")
        await self._send_raw(f"NICK {self.nickname}")
        await self._send_raw("CAP REQ :twitch.tv/tags twitch.tv/commands")
        await self._send_raw(f"JOIN #{self.channel}")
        log.info(f"Joined Twitch channel #{self.channel}")

    async def close(self) -> None:
        if not self.writer:
            return

        log.info("Closing Twitch IRC connection")
        writer = self.writer
        try:
            await self._send_raw(f"PART #{self.channel}")
        except (ConnectionError, OSError) as e:
            log.debug(f"PART before close failed: {e}")

        try:
            writer.close()
            await writer.wait_closed()
        finally:
            self.reader = None
            self.writer = None

    # ------------------------------------------------------------------ #
    # Messaging
    # ------------------------------------------------------------------ #

    async def send_message(self, text: str) -> None:
        text = " ".join(text.split())
        if not text:
            return

        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[: MAX_MESSAGE_LENGTH - 3].rstrip() + "..."

        await self._send_raw(f"PRIVMSG #{self.channel} :{text}")
        log.info(f"[#{self.channel}] Sent chat message ({len(text)} chars)")

    async def iter_messages(self) -> AsyncGenerator[TwitchChatMessage, None]:
        if not self.reader:
            raise RuntimeError("iter_messages called before connect()")

        while self.reader:
            line = await self.reader.readline()

            if line == b"":
                log.warning("Twitch IRC connection closed by remote")
                break

            decoded = line.decode("utf-8", errors="ignore").strip()
            if not decoded:
                continue

            if decoded.startswith("PING"):
                # PING :tmi.twitch.tv
                await self._send_raw(f"PONG {decoded.split(' ', 1)[-1]}")
                continue

            msg = parse_privmsg(decoded)
            if msg:
                yield msg

    async def _send_raw(self, data: str) -> None:
        if not self.writer:
            raise RuntimeError("Twitch IRC is not connected")

        async with self._send_lock:
            self.writer.write((data + "\r\n").encode("utf-8"))
            await self.writer.drain()


# ---------------------------------------------------------------------- #
# Line parsing
# ---------------------------------------------------------------------- #

def parse_privmsg(raw: str) -> Optional[TwitchChatMessage]:
    """
    Parse a PRIVMSG line into a TwitchChatMessage. Any other command
    returns None.
    """
    tags, remainder = _split_tags(raw)
    prefix, command, params = _split_prefix_and_command(remainder)

    if command != "PRIVMSG" or len(params) < 2:
        return None

    username = prefix.split("!", 1)[0] if "!" in prefix else prefix
    if not username:
        username = tags.get("display-name") or "unknown"

    badges = [badge for badge in tags.get("badges", "").split(",") if badge]

    return TwitchChatMessage(
        raw=raw,
        username=username,
        channel=params[0].lstrip("#"),
        text=params[1],
        user_id=tags.get("user-id"),
        badges=badges,
        timestamp=_parse_timestamp(tags.get("tmi-sent-ts")),
    )


def _split_tags(raw: str) -> Tuple[Dict[str, str], str]:
    if not raw.startswith("@") or " " not in raw:
        return {}, raw

    tags_part, remainder = raw.split(" ", 1)
    tags = {}
    for pair in tags_part[1:].split(";"):
        if "=" in pair:
            k, v = pair.split("=", 1)
            tags[k] = v
    return tags, remainder


def _split_prefix_and_command(raw: str) -> Tuple[str, str, Tuple[str, ...]]:
    prefix = ""
    rest = raw
    if raw.startswith(":"):
        prefix, _, rest = raw[1:].partition(" ")

    trailing = None
    if " :" in rest:
        rest, trailing = rest.split(" :", 1)

    parts = rest.split()
    if not parts:
        return prefix, "", tuple()

    params = parts[1:]
    if trailing is not None:
        params.append(trailing)
    return prefix, parts[0], tuple(params)


def _parse_timestamp(raw_ts: Optional[str]) -> Optional[datetime]:
    if not raw_ts or not raw_ts.isdigit():
        return None
    return datetime.fromtimestamp(int(raw_ts) / 1000.0, tz=timezone.utc)


def normalize_token(token: str) -> str:
    token = token.strip()
    if not token.startswith("oauth:"):
        return f"oauth:{token}"
    return token


def normalize_channel(channel: str) -> str:
    return channel.lstrip("#").strip().lower()
