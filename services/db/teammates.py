"""
Teammate table existence check.

The bot refuses to start unless its database is reachable and the
teammate table exists. The check opens the database read-only so a
missing file is reported instead of silently created.
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path

from shared.logging.logger import get_logger

log = get_logger("services.db.teammates")

_TABLE_EXISTS_SQL = "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?"


def _table_exists(db_path: Path, table: str) -> bool:
    uri = f"{db_path.resolve().as_uri()}?mode=ro"
    conn = sqlite3.connect(uri, uri=True)
    try:
        row = conn.execute(_TABLE_EXISTS_SQL, (table,)).fetchone()
        return row is not None
    finally:
        conn.close()


async def check_teammate_table(
    db_path: Path | str,
    *,
    table: str = "teammates",
) -> bool:
    """
    Return True when `table` exists in the sqlite database at `db_path`.

    Any failure is logged and reported as False.
    """
    path = Path(db_path)

    try:
        exists = await asyncio.to_thread(_table_exists, path, table)
    except sqlite3.Error as e:
        log.error(f"Database check failed for {path}: {e}")
        return False

    if not exists:
        log.error(f"Table '{table}' not found in {path}")
        return False

    log.info(f"Database check passed ({path}, table={table})")
    return True
