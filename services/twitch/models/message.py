from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class TwitchChatMessage:
    """
    A chat line received from Twitch IRC.

    Only PRIVMSG lines become messages; the bot uses them to answer
    built-in chat commands.
    """

    raw: str
    username: str
    channel: str
    text: str

    user_id: Optional[str] = None
    badges: List[str] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    @property
    def command(self) -> Optional[str]:
        """Lower-cased `!command` word, or None for ordinary chat."""
        stripped = self.text.strip()
        if not stripped.startswith("!") or len(stripped) < 2:
            return None
        return stripped.split(maxsplit=1)[0].lower()
