"""
Notification message templates.

Built-in defaults can be overridden by a `messages.json` file next to this
module (or any path passed to load_messages). Expected shape:

{
    "twitter_live": "...",
    "reminders": ["...", "..."]
}

Rules:
- Unknown keys are ignored
- Invalid values are ignored per-key, not globally
- Template fields are str.format placeholders; missing fields render empty
"""

from __future__ import annotations

import json
import string
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared.logging.logger import get_logger

log = get_logger("shared.config.messages")

_CONFIG_PATH = Path(__file__).parent / "messages.json"

DEFAULT_TEMPLATES: Dict[str, str] = {
    "twitter_live": "{display_name} is now live on Twitch! {title}\n{url}",
    "discord_live": "@here {display_name} is now live! Come hang out: {url}",
    "discord_live_embed_title": "{display_name} is live on Twitch",
    "end_of_stream": "Thanks for hanging out everyone! The stream has ended, see you next time <3",
    "new_follow": "Welcome to the community, {name}! Thanks for the follow!",
    "new_sub": "Thank you so much for subscribing, {name}!",
    "socials": "Find us around the web: {links}",
    "relay_attachment": "{url}",
}

DEFAULT_REMINDERS: List[str] = [
    "Enjoying the stream? Hit that follow button so you never miss one!",
    "Join the Discord community to keep the conversation going after stream.",
]

DEFAULT_SOCIAL_LINKS: List[str] = []


class _BlankDict(dict):
    def __missing__(self, key):
        return ""


class MessageTemplates:
    """Holds the active templates and renders them with event fields."""

    def __init__(
        self,
        templates: Optional[Dict[str, str]] = None,
        *,
        reminders: Optional[List[str]] = None,
        social_links: Optional[List[str]] = None,
    ):
        self._templates = dict(DEFAULT_TEMPLATES)
        if templates:
            self._templates.update(templates)
        self.reminders = list(reminders if reminders is not None else DEFAULT_REMINDERS)
        self.social_links = list(
            social_links if social_links is not None else DEFAULT_SOCIAL_LINKS
        )

    def render(self, key: str, **fields: Any) -> str:
        try:
            template = self._templates[key]
        except KeyError:
            raise KeyError(f"Unknown message template: {key}") from None

        values = _BlankDict({k: "" if v is None else v for k, v in fields.items()})
        return string.Formatter().vformat(template, (), values).strip()

    def keys(self) -> List[str]:
        return sorted(self._templates)


def _load_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        log.debug(f"{path.name} not found; using default templates")
        return {}

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except Exception as e:
        log.warning(f"Failed to load {path.name} ({e}); using default templates")
        return {}

    if not isinstance(data, dict):
        log.warning(f"{path.name} root is not an object; ignoring file")
        return {}

    return data


def _string_list(raw: Any, *, key: str) -> Optional[List[str]]:
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        log.warning(f"'{key}' must be a list of strings; using defaults")
        return None
    return [item for item in raw if item.strip()]


def load_messages(path: Optional[Path | str] = None) -> MessageTemplates:
    raw = _load_json(Path(path) if path else _CONFIG_PATH)

    templates: Dict[str, str] = {}
    for key in DEFAULT_TEMPLATES:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and value.strip():
            templates[key] = value
        else:
            log.warning(f"Template '{key}' is not a non-empty string; using default")

    return MessageTemplates(
        templates,
        reminders=_string_list(raw.get("reminders"), key="reminders"),
        social_links=_string_list(raw.get("social_links"), key="social_links"),
    )
