"""Alembic migrations — upgrade to head builds the same constraints the models declare.

Tests cover:
    - DATABASE_URL from the environment is honoured (via Settings)
    - The partial unique index allows one active listing per pet
"""

import sqlite3
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config

from petmarket.config import get_settings

ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def migrated_db(tmp_path, monkeypatch):
    db_path = tmp_path / "migrated.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    get_settings.cache_clear()
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))
    command.upgrade(config, "head")
    yield db_path
    get_settings.cache_clear()


def test_upgrade_creates_marketplace_tables(migrated_db):
    with sqlite3.connect(migrated_db) as conn:
        tables = {
            row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert {"pets", "currency_accounts", "marketplace_listings"} <= tables


def test_migrated_schema_allows_one_active_listing_per_pet(migrated_db):
    conn = sqlite3.connect(migrated_db)
    try:
        conn.execute("INSERT INTO pets (id, owner_id) VALUES ('p1', 'u1')")
        conn.execute(
            "INSERT INTO marketplace_listings (id, asset_id, seller_id, price, status) "
            "VALUES ('l1', 'p1', 'u1', 10, 'cancelled')"
        )
        conn.execute(
            "INSERT INTO marketplace_listings (id, asset_id, seller_id, price, status) "
            "VALUES ('l2', 'p1', 'u1', 10, 'active')"
        )
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO marketplace_listings (id, asset_id, seller_id, price, status) "
                "VALUES ('l3', 'p1', 'u1', 10, 'active')"
            )
    finally:
        conn.close()
