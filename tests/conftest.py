"""Root conftest — file-backed SQLite database, seeding helpers and a fixed clock.

Invariants:
    - Every test gets a fresh SQLite file under tmp_path
    - Each unit of work gets its own connection, so concurrent tests really contend
    - Seeding and state reads go through short-lived sessions, never a unit of work

Design Decisions:
    - File DB over :memory:: an in-memory aiosqlite DB is a single shared connection,
      which would make concurrent transactions interleave on one connection
"""

import os

import pytest
from sqlalchemy import select

os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)

from petmarket.db.base import Base  # noqa: E402
import petmarket.models  # noqa: E402,F401
from petmarket.infrastructure.database import DatabaseSessionManager  # noqa: E402
from petmarket.models.currency_account import CurrencyAccount  # noqa: E402
from petmarket.models.marketplace_listing import MarketplaceListing  # noqa: E402
from petmarket.models.pet import Pet  # noqa: E402
from petmarket.services.marketplace import MarketplaceCoordinator  # noqa: E402
from tests.helpers import BUYER, POOR_BUYER, SELLER, FixedClock, MarketState  # noqa: E402


@pytest.fixture
async def db_manager(tmp_path):
    manager = DatabaseSessionManager(
        f"sqlite+aiosqlite:///{tmp_path / 'market.db'}",
        pool_size=10,
    )
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.close()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def coordinator(db_manager, clock):
    return MarketplaceCoordinator(db_manager.unit_of_work, clock=clock)


@pytest.fixture
def seed(db_manager):
    """Insert pets and currency accounts directly."""

    class _Seeder:
        async def pet(self, owner_id: str, name: str = "Biscuit") -> str:
            async with db_manager.session() as db:
                pet = Pet(owner_id=owner_id, name=name)
                db.add(pet)
                await db.commit()
                return pet.id

        async def account(self, user_id: str, balance: int) -> None:
            async with db_manager.session() as db:
                db.add(CurrencyAccount(user_id=user_id, balance=balance))
                await db.commit()

    return _Seeder()


@pytest.fixture
def read_state(db_manager):
    """Snapshot owner, listing status and balances as committed in the DB."""

    async def _read(asset_id: str, listing_id: str | None, *user_ids: str) -> MarketState:
        async with db_manager.session() as db:
            owner_id = (await db.execute(
                select(Pet.owner_id).where(Pet.id == asset_id),
            )).scalar_one_or_none()
            listing = None
            if listing_id is not None:
                listing = (await db.execute(
                    select(MarketplaceListing.status, MarketplaceListing.buyer_id)
                    .where(MarketplaceListing.id == listing_id),
                )).one_or_none()
            balances = {}
            for user_id in user_ids:
                balances[user_id] = (await db.execute(
                    select(CurrencyAccount.balance).where(CurrencyAccount.user_id == user_id),
                )).scalar_one_or_none()
            await db.rollback()
        return MarketState(
            owner_id=owner_id,
            listing_status=listing.status if listing else None,
            buyer_id=listing.buyer_id if listing else None,
            balances=balances,
        )

    return _read


@pytest.fixture
async def market(seed):
    """Seller (500) owns one pet; buyer has 1000; poor buyer has 50."""
    asset_id = await seed.pet(SELLER, "Pet for Sale")
    await seed.account(SELLER, 500)
    await seed.account(BUYER, 1000)
    await seed.account(POOR_BUYER, 50)
    return {"asset_id": asset_id}
