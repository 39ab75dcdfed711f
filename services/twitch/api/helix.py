import time
from typing import Any, Dict, Optional

import httpx

from core.errors import TwitchAPIError
from shared.logging.logger import get_logger

log = get_logger("twitch.helix", runtime="twitch")


class TwitchHelixAPI:
    """
    Read-only Twitch Helix lookups used by the bot.

    Responsibilities:
    - Obtain and cache an app access token (client-credentials grant)
    - Resolve the broadcaster profile from a login name
    - Look up the broadcaster's current stream

    Failures raise TwitchAPIError; callers decide whether they are fatal.
    """

    TOKEN_URL = "https://id.twitch.tv/oauth2/token"
    USERS_URL = "https://api.twitch.tv/helix/users"
    STREAMS_URL = "https://api.twitch.tv/helix/streams"

    # Refresh the token this many seconds before Twitch expires it
    TOKEN_EXPIRY_MARGIN = 300

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not client_id or not client_secret:
            raise RuntimeError("Twitch client id and secret are required")

        self.client_id = client_id
        self._client_secret = client_secret
        self._transport = transport

        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0

    # ------------------------------------------------------------

    async def get_profile(self, login: str) -> Optional[Dict[str, Any]]:
        """
        Return the Helix user object for `login`, or None if no such user.
        """
        data = await self._get(self.USERS_URL, {"login": login.lower()})
        users = data.get("data") or []
        if not users:
            log.info(f"Twitch user not found: {login}")
            return None
        return users[0]

    async def get_stream(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Return the broadcaster's active stream, or None when offline.
        """
        data = await self._get(self.STREAMS_URL, {"user_id": user_id})
        streams = data.get("data") or []
        if not streams:
            log.debug(f"No active stream for user {user_id}")
            return None
        return streams[0]

    # ------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------

    async def _get_access_token(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        payload = {
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }

        async with self._client() as client:
            try:
                r = await client.post(self.TOKEN_URL, data=payload)
                r.raise_for_status()
                token_data = r.json()
            except httpx.HTTPStatusError as e:
                raise TwitchAPIError(
                    f"Twitch token request rejected: {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise TwitchAPIError(f"Twitch token request failed: {e}") from e

        self._access_token = token_data["access_token"]
        expires_in = int(token_data.get("expires_in", 3600))
        self._token_expires_at = (
            time.monotonic() + max(0, expires_in - self.TOKEN_EXPIRY_MARGIN)
        )
        log.info("Obtained Twitch app access token")
        return self._access_token

    # ------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=15.0, transport=self._transport)

    async def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        token = await self._get_access_token()
        headers = {
            "Client-ID": self.client_id,
            "Authorization": f"Bearer {token}",
        }

        async with self._client() as client:
            try:
                r = await client.get(url, params=params, headers=headers)
                r.raise_for_status()
                data = r.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 401:
                    # Token revoked early; fetch a fresh one next call
                    self._access_token = None
                raise TwitchAPIError(
                    f"Helix request to {url} failed: {e.response.status_code}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise TwitchAPIError(f"Helix request to {url} failed: {e}") from e

        return data if isinstance(data, dict) else {}
