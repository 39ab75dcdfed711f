"""Runtime version metadata for Beastie.

Import-safe: exposes version identifiers without side effects.
"""

from __future__ import annotations

PROJECT_NAME = "Beastie Bot"
VERSION = "v1.0.0"
BUILD = "2026.10"

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "BUILD",
    "as_string",
]


def as_string() -> str:
    return f"{PROJECT_NAME} {VERSION} (Build {BUILD})"
