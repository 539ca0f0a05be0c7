"""Marketplace Coordinator — create, purchase and cancel listings as atomic units of work.

Invariants:
    - Argument errors are raised before a unit of work is opened
    - Every business-rule failure escapes the unit of work, which rolls it back whole
    - The sold/cancelled compare-and-swap is the FIRST write of its unit of work;
      a lost race is reported as ListingNotAvailable / ListingNotActive
    - A purchase moves exactly `price` from buyer to seller (currency conserved)
    - Buyer and seller accounts are written in user_id order, so opposite purchases
      between two users take their row locks in the same order
    - Pet ownership changes only here, only to the buyer of a sold listing

Design Decisions:
    - Depends on a UnitOfWork factory, never on an engine or global session
    - Clock injected so sold_at / listed_at are deterministic under test
    - Locking reads (get_for_update) plus compare-and-swap writes: first committer wins
      on engines with row locks and on engines without them
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from petmarket.core.domain_types import (
    AssetId, Listing, ListingId, PurchaseResult, UserId,
)
from petmarket.core.enforce_listing import (
    check_affordable,
    check_asset_owner,
    check_cancellable,
    check_price,
    check_purchasable,
    require_ids,
)
from petmarket.core.errors import (
    AccountNotFoundError,
    AlreadyListedError,
    AssetNotFoundError,
    BuyerAccountNotFoundError,
    ErrorContext,
    InternalFailureError,
    ListingNotActiveError,
    ListingNotAvailableError,
    ListingNotFoundError,
)
from petmarket.core.repository_protocols import UnitOfWork, UnitOfWorkFactory

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketplaceCoordinator:
    """Transaction coordinator for the pet marketplace."""

    def __init__(
        self,
        unit_of_work: UnitOfWorkFactory,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._unit_of_work = unit_of_work
        self._clock = clock

    async def create_listing(
        self, asset_id: AssetId, seller_id: UserId, price: int,
    ) -> Listing:
        """List a pet for sale. Only its owner may list it, once at a time."""
        require_ids(asset_id=asset_id, seller_id=seller_id)
        check_price(price)

        try:
            async with self._unit_of_work() as uow:
                asset = await uow.assets.get_for_update(asset_id)
                if asset is None:
                    raise AssetNotFoundError(ErrorContext(asset_id=asset_id))
                check_asset_owner(asset, seller_id)
                if await uow.listings.find_active_by_asset(asset_id) is not None:
                    raise AlreadyListedError(ErrorContext(asset_id=asset_id))
                listing = await uow.listings.create(
                    asset_id, seller_id, price, self._clock(),
                )
        except InternalFailureError as e:
            e.context.asset_id = asset_id
            logger.error(
                "create_listing failed in storage",
                extra={"asset_id": asset_id, "seller_id": seller_id, "operation": e.operation},
            )
            raise

        logger.info(
            f"Pet {asset_id} listed for {price}",
            extra={"listing_id": listing.id, "asset_id": asset_id, "seller_id": seller_id, "price": price},
        )
        return listing

    async def purchase_pet(
        self, listing_id: ListingId, buyer_id: UserId,
    ) -> PurchaseResult:
        """Buy a listed pet: debit buyer, credit seller, hand over the pet, close the listing.

        All four writes commit together or not at all.
        """
        require_ids(listing_id=listing_id, buyer_id=buyer_id)

        try:
            async with self._unit_of_work() as uow:
                listing = await uow.listings.get_for_update(listing_id)
                if listing is None:
                    raise ListingNotFoundError(ErrorContext(listing_id=listing_id))
                check_purchasable(listing, buyer_id)

                try:
                    balance = await uow.ledger.get_balance(buyer_id)
                except AccountNotFoundError as e:
                    raise BuyerAccountNotFoundError(
                        ErrorContext(listing_id=listing_id, user_id=buyer_id),
                    ) from e
                check_affordable(balance, listing.price, buyer_id)

                if await uow.assets.get(listing.asset_id) is None:
                    raise AssetNotFoundError(ErrorContext(asset_id=listing.asset_id))

                sold_at = self._clock()
                if not await uow.listings.set_sold(listing_id, buyer_id, sold_at):
                    raise ListingNotAvailableError(
                        ErrorContext(listing_id=listing_id, user_id=buyer_id),
                    )
                await self._settle(uow, listing, buyer_id)
                asset = await uow.assets.transfer_ownership(listing.asset_id, buyer_id)
                sold = await uow.listings.get(listing_id)
        except InternalFailureError as e:
            e.context.listing_id = listing_id
            logger.error(
                "purchase_pet failed in storage",
                extra={"listing_id": listing_id, "buyer_id": buyer_id, "operation": e.operation},
            )
            raise

        logger.info(
            f"Listing {listing_id} sold for {listing.price}",
            extra={
                "listing_id": listing_id,
                "asset_id": listing.asset_id,
                "buyer_id": buyer_id,
                "seller_id": listing.seller_id,
                "price": listing.price,
            },
        )
        return PurchaseResult(listing=sold, asset=asset)

    @staticmethod
    async def _settle(uow: UnitOfWork, listing: Listing, buyer_id: UserId) -> None:
        """Debit buyer and credit seller, touching the two accounts in user_id order."""
        async def debit_buyer() -> None:
            try:
                await uow.ledger.debit(buyer_id, listing.price)
            except AccountNotFoundError as e:
                raise BuyerAccountNotFoundError(
                    ErrorContext(listing_id=listing.id, user_id=buyer_id),
                ) from e

        async def credit_seller() -> None:
            await uow.ledger.credit(listing.seller_id, listing.price)

        writes = sorted(
            [(buyer_id, debit_buyer), (listing.seller_id, credit_seller)],
            key=lambda pair: pair[0],
        )
        for _, write in writes:
            await write()

    async def cancel_listing(
        self, listing_id: ListingId, user_id: UserId,
    ) -> Listing:
        """Withdraw an unsold listing. Only its seller may cancel it."""
        require_ids(listing_id=listing_id, user_id=user_id)

        try:
            async with self._unit_of_work() as uow:
                listing = await uow.listings.get_for_update(listing_id)
                if listing is None:
                    raise ListingNotFoundError(ErrorContext(listing_id=listing_id))
                check_cancellable(listing, user_id)
                if not await uow.listings.set_cancelled(listing_id):
                    raise ListingNotActiveError(
                        ErrorContext(listing_id=listing_id, user_id=user_id),
                    )
                cancelled = await uow.listings.get(listing_id)
        except InternalFailureError as e:
            e.context.listing_id = listing_id
            logger.error(
                "cancel_listing failed in storage",
                extra={"listing_id": listing_id, "user_id": user_id, "operation": e.operation},
            )
            raise

        logger.info(
            f"Listing {listing_id} cancelled",
            extra={"listing_id": listing_id, "user_id": user_id},
        )
        return cancelled

    async def get_listing(self, listing_id: ListingId) -> Listing:
        """Read-only lookup."""
        require_ids(listing_id=listing_id)
        async with self._unit_of_work() as uow:
            listing = await uow.listings.get(listing_id)
        if listing is None:
            raise ListingNotFoundError(ErrorContext(listing_id=listing_id))
        return listing
