"""Listing Enforcement — pure precondition checks for create, purchase and cancel.

Invariants:
    - Every check is PURE: inspects records already loaded, raises a typed error, returns None
    - Argument checks run before any unit of work opens
    - The order callers invoke these checks in is the order errors are reported in

Design Decisions:
    - Raise instead of returning error dicts: the coordinator aborts the unit of work
      by letting the exception escape the async context
"""

from petmarket.core.domain_types import Asset, Listing
from petmarket.core.errors import (
    CannotPurchaseOwnListingError,
    ErrorContext,
    InsufficientFundsError,
    InvalidArgumentError,
    ListingNotActiveError,
    ListingNotAvailableError,
    NotOwnerError,
)


# ─── Argument checks ─────────────────────────────────────────────

def require_ids(**ids: object) -> None:
    """Every keyword must be a non-empty, non-blank string."""
    missing = [
        name for name, value in ids.items()
        if not isinstance(value, str) or not value.strip()
    ]
    if missing:
        raise InvalidArgumentError(
            f"{' and '.join(missing)} required", field=missing[0],
        )


def check_price(price: object) -> None:
    """Price is a non-negative integer in the internal currency."""
    if isinstance(price, bool) or not isinstance(price, int):
        raise InvalidArgumentError("Price must be an integer", field="price")
    if price < 0:
        raise InvalidArgumentError("Price must be non-negative", field="price")


# ─── create_listing ──────────────────────────────────────────────

def check_asset_owner(asset: Asset, seller_id: str) -> None:
    if asset.owner_id != seller_id:
        raise NotOwnerError(
            "You can only list your own pets",
            ErrorContext(asset_id=asset.id, user_id=seller_id),
        )


# ─── purchase_pet ────────────────────────────────────────────────

def check_purchasable(listing: Listing, buyer_id: str) -> None:
    """Status before self-purchase: a sold listing reports not-available, even to its seller."""
    ctx = ErrorContext(listing_id=listing.id, user_id=buyer_id)
    if listing.status.is_terminal:
        raise ListingNotAvailableError(ctx)
    if listing.seller_id == buyer_id:
        raise CannotPurchaseOwnListingError(ctx)


def check_affordable(balance: int, price: int, buyer_id: str) -> None:
    if balance < price:
        raise InsufficientFundsError(ErrorContext(user_id=buyer_id))


# ─── cancel_listing ──────────────────────────────────────────────

def check_cancellable(listing: Listing, user_id: str) -> None:
    """Ownership before status."""
    ctx = ErrorContext(listing_id=listing.id, user_id=user_id)
    if listing.seller_id != user_id:
        raise NotOwnerError("You can only cancel your own listings", ctx)
    if listing.status.is_terminal:
        raise ListingNotActiveError(ctx)
