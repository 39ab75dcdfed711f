from __future__ import annotations

from typing import Any, Mapping

import discord

from shared.utils.links import twitch_url

TWITCH_PURPLE = 0x9146FF


def live_embed(title: str, stream: Mapping[str, Any]) -> discord.Embed:
    embed = discord.Embed(
        title=title,
        description=stream.get("title") or None,
        url=twitch_url(stream.get("user_login")),
        color=TWITCH_PURPLE,
    )

    if stream.get("game_name"):
        embed.add_field(name="Playing", value=stream["game_name"], inline=True)

    thumbnail = stream.get("thumbnail_url")
    if thumbnail:
        embed.set_image(url=thumbnail.format(width=640, height=360))

    embed.set_footer(text="Twitch")
    return embed
