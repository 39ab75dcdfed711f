"""Process-lifetime bot state.

A single BotState instance is owned by BeastieBot. It is never persisted:
every startup rebuilds it from a live Helix stream lookup.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

# Stream id meaning "no previously observed stream".
SENTINEL_STREAM_ID = "0"


@dataclass
class BotState:
    is_streaming: bool = False
    cur_stream_id: str = SENTINEL_STREAM_ID

    @classmethod
    def from_stream(cls, stream: Optional[Mapping[str, Any]]) -> "BotState":
        """
        Build the startup state from the broadcaster's current stream.

        No stream (or one without an id) hydrates to the sentinel.
        """
        if not isinstance(stream, Mapping) or not stream.get("id"):
            return cls()

        return cls(
            is_streaming=stream.get("type") == "live",
            cur_stream_id=str(stream["id"]),
        )

    def apply(self, result) -> None:
        """Record a StreamChangeResult. Synchronous by contract."""
        self.is_streaming = result.live
        self.cur_stream_id = str(result.stream_id)

    @property
    def has_prior_stream(self) -> bool:
        return self.cur_stream_id != SENTINEL_STREAM_ID

    def snapshot(self) -> Dict[str, Any]:
        return asdict(self)
