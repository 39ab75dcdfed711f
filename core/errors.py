"""Exception types raised across the Beastie runtime."""


class BeastieError(Exception):
    """Base class for all Beastie runtime errors."""


class ConfigError(BeastieError):
    """Raised when required configuration is missing or malformed."""


class StartupError(BeastieError):
    """Raised when the bot cannot complete its startup sequence."""


class TwitchAPIError(BeastieError):
    """Raised when a Twitch Helix request fails."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
