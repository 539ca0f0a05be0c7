"""Domain Types — identity types, listing status and the plain records stores return.

Invariants:
    - AssetId, UserId, ListingId are opaque strings — never parsed in domain logic
    - Listing.buyer_id and Listing.sold_at are set iff status is SOLD
    - Records are frozen: a store write produces a new record, never mutates one

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enum for status: serializes to JSON and stores as VARCHAR without converters
    - Records are dataclasses, not ORM objects: the coordinator never sees a session
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

AssetId = NewType("AssetId", str)
UserId = NewType("UserId", str)
ListingId = NewType("ListingId", str)


# ─── Enums ───────────────────────────────────────────────────────

class ListingStatus(str, Enum):
    """Listing lifecycle states — maps to DB `status` column.

    ACTIVE is the only non-terminal state.
    """
    ACTIVE = "active"
    SOLD = "sold"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not ListingStatus.ACTIVE


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class Asset:
    """A pet. Only ownership matters to the marketplace; name is payload."""
    id: AssetId
    owner_id: UserId
    name: str = ""


@dataclass(frozen=True)
class Listing:
    """An offer to sell one pet at a fixed price."""
    id: ListingId
    asset_id: AssetId
    seller_id: UserId
    price: int
    status: ListingStatus
    listed_at: datetime
    buyer_id: UserId | None = None
    sold_at: datetime | None = None


@dataclass(frozen=True)
class PurchaseResult:
    """Post-commit state of a successful purchase."""
    listing: Listing
    asset: Asset
