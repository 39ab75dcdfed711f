"""
Stream-change evaluation.

Classifies an incoming stream payload against the previously recorded
stream id:

- payload with a new id   -> went live (new stream)
- payload with same id    -> stayed live
- no payload              -> went offline (ended if a prior stream exists)

Pure: no I/O, no logging, no state mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from core.state import SENTINEL_STREAM_ID


@dataclass(frozen=True)
class StreamChangeResult:
    live: bool
    new_stream: bool
    stream_id: str
    ended: bool = False


def _stream_id(stream: Any) -> Optional[str]:
    if not isinstance(stream, Mapping):
        return None

    raw_id = stream.get("id")
    if raw_id is None:
        return None

    stream_id = str(raw_id).strip()
    return stream_id or None


def evaluate_stream_change(
    stream: Optional[Mapping[str, Any]],
    previous_id: str,
) -> StreamChangeResult:
    previous_id = str(previous_id) if previous_id is not None else SENTINEL_STREAM_ID
    stream_id = _stream_id(stream)

    # Malformed payloads count as offline
    if stream_id is None:
        return StreamChangeResult(
            live=False,
            new_stream=False,
            stream_id=previous_id,
            ended=previous_id != SENTINEL_STREAM_ID,
        )

    if stream_id != previous_id:
        return StreamChangeResult(live=True, new_stream=True, stream_id=stream_id)

    return StreamChangeResult(live=True, new_stream=False, stream_id=previous_id)
