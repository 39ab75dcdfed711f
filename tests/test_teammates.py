"""Tests for the startup database check"""

import sqlite3

from services.db.teammates import check_teammate_table
from fakes import run


def make_db(path, *tables):
    conn = sqlite3.connect(path)
    for table in tables:
        conn.execute(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, name TEXT)")
    conn.commit()
    conn.close()


def test_existing_table_passes(tmp_path):
    db = tmp_path / "beastie.db"
    make_db(db, "teammates")

    assert run(check_teammate_table(db)) is True


def test_missing_table_fails(tmp_path):
    db = tmp_path / "beastie.db"
    make_db(db, "other")

    assert run(check_teammate_table(db)) is False


def test_custom_table_name(tmp_path):
    db = tmp_path / "beastie.db"
    make_db(db, "crew")

    assert run(check_teammate_table(db, table="crew")) is True


def test_missing_database_fails_without_creating_it(tmp_path):
    db = tmp_path / "absent.db"

    assert run(check_teammate_table(db)) is False
    assert not db.exists()
