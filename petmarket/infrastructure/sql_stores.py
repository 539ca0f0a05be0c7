"""SQL Stores — SQLAlchemy implementations of the asset, ledger and listing contracts.

Invariants:
    - All three stores share the AsyncSession owned by one SqlUnitOfWork
    - Status writes are compare-and-swap: UPDATE ... WHERE status = 'active'
    - debit is a conditional UPDATE ... WHERE balance >= amount (never goes negative)
    - credit is an atomic upsert (INSERT ... ON CONFLICT DO UPDATE)
    - SQLAlchemy errors leave the unit of work as InternalFailureError, after rollback

Design Decisions:
    - Locking reads use SELECT ... FOR UPDATE; SQLite ignores the clause and relies on
      its database-level write lock plus the compare-and-swap updates
    - Reads use populate_existing so a row re-read after a bulk UPDATE is never stale
    - Timestamps normalized to UTC: SQLite returns naive datetimes
"""

import logging
from datetime import datetime, timezone
from types import TracebackType

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from petmarket.core.domain_types import (
    Asset, AssetId, Listing, ListingId, ListingStatus, UserId,
)
from petmarket.core.errors import (
    AccountNotFoundError,
    AlreadyListedError,
    AssetNotFoundError,
    ErrorContext,
    InsufficientFundsError,
    InternalFailureError,
    InvalidArgumentError,
)
from petmarket.models.currency_account import CurrencyAccount
from petmarket.models.marketplace_listing import MarketplaceListing
from petmarket.models.pet import Pet

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_asset(row: Pet) -> Asset:
    return Asset(id=AssetId(row.id), owner_id=UserId(row.owner_id), name=row.name)


def _to_listing(row: MarketplaceListing) -> Listing:
    return Listing(
        id=ListingId(row.id),
        asset_id=AssetId(row.asset_id),
        seller_id=UserId(row.seller_id),
        price=row.price,
        status=ListingStatus(row.status),
        listed_at=_as_utc(row.listed_at),
        buyer_id=UserId(row.buyer_id) if row.buyer_id is not None else None,
        sold_at=_as_utc(row.sold_at),
    )


class SqlAssetStore:
    """Pet ownership reads and the ownership-transfer write."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, asset_id: AssetId, lock: bool) -> Asset | None:
        query = select(Pet).where(Pet.id == asset_id)
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(
            query.execution_options(populate_existing=True),
        )
        row = result.scalar_one_or_none()
        return _to_asset(row) if row else None

    async def get(self, asset_id: AssetId) -> Asset | None:
        return await self._fetch(asset_id, lock=False)

    async def get_for_update(self, asset_id: AssetId) -> Asset | None:
        return await self._fetch(asset_id, lock=True)

    async def transfer_ownership(
        self, asset_id: AssetId, new_owner_id: UserId,
    ) -> Asset:
        """Unconditional owner write. Only the coordinator calls this, after a sale."""
        result = await self.db.execute(
            update(Pet)
            .where(Pet.id == asset_id)
            .values(owner_id=new_owner_id)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            raise AssetNotFoundError(ErrorContext(asset_id=asset_id))
        asset = await self.get(asset_id)
        if asset is None:
            raise AssetNotFoundError(ErrorContext(asset_id=asset_id))
        return asset


class SqlCurrencyLedger:
    """Per-user balances. credit upserts, debit requires an existing account."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _balance_or_none(self, user_id: UserId) -> int | None:
        result = await self.db.execute(
            select(CurrencyAccount.balance).where(CurrencyAccount.user_id == user_id),
        )
        return result.scalar_one_or_none()

    async def get_balance(self, user_id: UserId) -> int:
        balance = await self._balance_or_none(user_id)
        if balance is None:
            raise AccountNotFoundError(ErrorContext(user_id=user_id))
        return balance

    async def credit(self, user_id: UserId, amount: int) -> int:
        """Add amount, creating the account with balance=amount when absent."""
        if amount < 0:
            raise InvalidArgumentError("Credit amount must be non-negative", field="amount")
        dialect = self.db.bind.dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            logger.error(f"credit upsert not supported on {dialect}")
            raise InternalFailureError("credit")
        now = datetime.now(timezone.utc)
        stmt = insert(CurrencyAccount).values(
            user_id=user_id, balance=amount, updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CurrencyAccount.user_id],
            set_={"balance": CurrencyAccount.balance + amount, "updated_at": now},
        ).returning(CurrencyAccount.balance)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def debit(self, user_id: UserId, amount: int) -> int:
        """Subtract amount; never creates an account and never goes below zero."""
        if amount < 0:
            raise InvalidArgumentError("Debit amount must be non-negative", field="amount")
        result = await self.db.execute(
            update(CurrencyAccount)
            .where(CurrencyAccount.user_id == user_id)
            .where(CurrencyAccount.balance >= amount)
            .values(
                balance=CurrencyAccount.balance - amount,
                updated_at=datetime.now(timezone.utc),
            )
            .returning(CurrencyAccount.balance)
            .execution_options(synchronize_session=False),
        )
        balance = result.scalar_one_or_none()
        if balance is not None:
            return balance
        ctx = ErrorContext(user_id=user_id)
        if await self._balance_or_none(user_id) is None:
            raise AccountNotFoundError(ctx)
        raise InsufficientFundsError(ctx)


class SqlListingStore:
    """Listing rows with compare-and-swap status transitions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch_one(self, query) -> Listing | None:
        result = await self.db.execute(
            query.execution_options(populate_existing=True),
        )
        row = result.scalar_one_or_none()
        return _to_listing(row) if row else None

    async def create(
        self,
        asset_id: AssetId,
        seller_id: UserId,
        price: int,
        listed_at: datetime,
    ) -> Listing:
        row = MarketplaceListing(
            asset_id=asset_id,
            seller_id=seller_id,
            price=price,
            status=ListingStatus.ACTIVE.value,
            listed_at=listed_at,
        )
        self.db.add(row)
        try:
            await self.db.flush()
        except IntegrityError as e:
            # uq_marketplace_listings_active_asset: a concurrent create won
            logger.info(
                f"Active listing insert rejected for pet {asset_id}: {e.orig}",
                extra={"asset_id": asset_id},
            )
            raise AlreadyListedError(ErrorContext(asset_id=asset_id)) from e
        return _to_listing(row)

    async def get(self, listing_id: ListingId) -> Listing | None:
        return await self._fetch_one(
            select(MarketplaceListing).where(MarketplaceListing.id == listing_id),
        )

    async def get_for_update(self, listing_id: ListingId) -> Listing | None:
        return await self._fetch_one(
            select(MarketplaceListing)
            .where(MarketplaceListing.id == listing_id)
            .with_for_update(),
        )

    async def find_active_by_asset(self, asset_id: AssetId) -> Listing | None:
        return await self._fetch_one(
            select(MarketplaceListing)
            .where(MarketplaceListing.asset_id == asset_id)
            .where(MarketplaceListing.status == ListingStatus.ACTIVE.value),
        )

    async def _transition(self, listing_id: ListingId, **values) -> bool:
        result = await self.db.execute(
            update(MarketplaceListing)
            .where(MarketplaceListing.id == listing_id)
            .where(MarketplaceListing.status == ListingStatus.ACTIVE.value)
            .values(**values)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    async def set_sold(
        self, listing_id: ListingId, buyer_id: UserId, sold_at: datetime,
    ) -> bool:
        """active -> sold. False when the row was no longer active."""
        return await self._transition(
            listing_id,
            status=ListingStatus.SOLD.value,
            buyer_id=buyer_id,
            sold_at=sold_at,
        )

    async def set_cancelled(self, listing_id: ListingId) -> bool:
        """active -> cancelled. False when the row was no longer active."""
        return await self._transition(
            listing_id, status=ListingStatus.CANCELLED.value,
        )


class SqlUnitOfWork:
    """One database transaction exposing the three stores.

    Commits on clean exit; rolls back on any exception. Raw SQLAlchemy
    failures are re-raised as InternalFailureError.
    """

    assets: SqlAssetStore
    ledger: SqlCurrencyLedger
    listings: SqlListingStore

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> "SqlUnitOfWork":
        self._session = self._session_factory()
        self.assets = SqlAssetStore(self._session)
        self.ledger = SqlCurrencyLedger(self._session)
        self.listings = SqlListingStore(self._session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        session = self._session
        assert session is not None
        try:
            if exc is None:
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await self._rollback(session)
                    logger.error(f"Unit of work commit failed: {e}")
                    raise InternalFailureError("commit") from e
                return
            await self._rollback(session)
            if isinstance(exc, SQLAlchemyError):
                logger.error(f"Unit of work aborted by database error: {exc}")
                raise InternalFailureError("execute") from exc
        finally:
            await session.close()
            self._session = None

    @staticmethod
    async def _rollback(session: AsyncSession) -> None:
        try:
            await session.rollback()
        except SQLAlchemyError as e:
            logger.error(f"Rollback failed: {e}", exc_info=True)
