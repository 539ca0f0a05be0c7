"""Boundary Protocols — contracts between the coordinator and persistence.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Every store method runs inside the UnitOfWork that exposed it
    - set_sold / set_cancelled only take effect while the row is still ACTIVE
    - CurrencyLedger.credit upserts; CurrencyLedger.debit never creates an account

Design Decisions:
    - Protocol over ABC: structural subtyping, in-memory fakes need no inheritance
    - Async in Protocol: implementations do IO; checks in enforce_listing stay sync
"""

from datetime import datetime
from types import TracebackType
from typing import Callable, Protocol

from petmarket.core.domain_types import (
    Asset, AssetId, Listing, ListingId, UserId,
)


class AssetStore(Protocol):
    """Pet ownership collaborator."""
    async def get(self, asset_id: AssetId) -> Asset | None: ...
    async def get_for_update(self, asset_id: AssetId) -> Asset | None: ...
    async def transfer_ownership(
        self, asset_id: AssetId, new_owner_id: UserId,
    ) -> Asset: ...


class CurrencyLedger(Protocol):
    """Per-user non-negative balances.

    get_balance and debit raise AccountNotFoundError for unknown users;
    debit raises InsufficientFundsError rather than going negative.
    """
    async def get_balance(self, user_id: UserId) -> int: ...
    async def credit(self, user_id: UserId, amount: int) -> int: ...
    async def debit(self, user_id: UserId, amount: int) -> int: ...


class ListingStore(Protocol):
    """Listing persistence with compare-and-swap status transitions."""
    async def create(
        self,
        asset_id: AssetId,
        seller_id: UserId,
        price: int,
        listed_at: datetime,
    ) -> Listing: ...
    async def get(self, listing_id: ListingId) -> Listing | None: ...
    async def get_for_update(self, listing_id: ListingId) -> Listing | None: ...
    async def find_active_by_asset(self, asset_id: AssetId) -> Listing | None: ...
    async def set_sold(
        self, listing_id: ListingId, buyer_id: UserId, sold_at: datetime,
    ) -> bool: ...
    async def set_cancelled(self, listing_id: ListingId) -> bool: ...


class UnitOfWork(Protocol):
    """One atomic, isolated transaction spanning all three stores.

    Commits on clean exit from the async context, rolls back on exception.
    """
    assets: AssetStore
    ledger: CurrencyLedger
    listings: ListingStore

    async def __aenter__(self) -> "UnitOfWork": ...
    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
