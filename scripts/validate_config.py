"""
Configuration validation script.

Checks, without connecting to any platform:
- required environment variables are present and well-formed
- shared/config/messages.json (if present) has the expected shape
- the database is reachable and holds the teammate table

Design rules:
- No side effects on import
- No bot startup
- Validation only (no mutation)
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.errors import ConfigError
from services.db.teammates import check_teammate_table
from shared.config.bot import load_config
from shared.config.messages import DEFAULT_TEMPLATES

ROOT = Path(__file__).resolve().parents[1]
MESSAGES_PATH = ROOT / "shared" / "config" / "messages.json"


def _error(msg: str) -> None:
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


# ------------------------------------------------------------
# Validators
# ------------------------------------------------------------

def validate_messages(path: Path = MESSAGES_PATH) -> List[str]:
    """
    Return a list of problems found in a messages.json file.
    A missing file is valid (defaults apply).
    """
    if not path.exists():
        return []

    try:
        with path.open("r", encoding="utf-8") as f:
            data: Any = json.load(f)
    except (OSError, ValueError) as e:
        return [f"{path.name}: invalid JSON ({e})"]

    if not isinstance(data, dict):
        return [f"{path.name}: root JSON value must be an object"]

    problems = []
    for key, value in data.items():
        if key in DEFAULT_TEMPLATES:
            if not isinstance(value, str) or not value.strip():
                problems.append(f"{path.name}: '{key}' must be a non-empty string")
        elif key in ("reminders", "social_links"):
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                problems.append(f"{path.name}: '{key}' must be a list of strings")
        else:
            problems.append(f"{path.name}: unknown key '{key}'")
    return problems


def validate_environment(environ: Optional[Dict[str, str]] = None) -> List[str]:
    try:
        config = load_config(environ)
    except ConfigError as e:
        return [str(e)]

    if not asyncio.run(
        check_teammate_table(config.database.path, table=config.database.teammate_table)
    ):
        return [f"database check failed for {config.database.path}"]
    return []


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main() -> int:
    problems = validate_messages() + validate_environment()

    for problem in problems:
        _error(problem)

    if problems:
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
