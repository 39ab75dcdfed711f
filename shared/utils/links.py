from __future__ import annotations


def twitch_url(login: str | None) -> str:
    """Channel URL for a Twitch login, or the Twitch homepage when unknown."""
    return f"https://twitch.tv/{login}" if login else "https://twitch.tv"
