"""Listing Schemas — Pydantic models for marketplace requests and responses.

Invariants:
    - ListingCreate.price is a non-negative integer; asset_id stripped, non-empty
    - Responses are built from core records via from_record(), never from ORM rows
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from petmarket.core.domain_types import Asset, Listing, ListingStatus


class ListingCreate(BaseModel):
    """Create listing — the seller comes from the X-User-Id header, not the body."""
    asset_id: str = Field(min_length=1, max_length=64)
    price: int = Field(ge=0, strict=True)

    @field_validator("asset_id")
    @classmethod
    def strip_asset_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("asset_id cannot be empty or whitespace")
        return v


class ListingResponse(BaseModel):
    id: str
    asset_id: str
    seller_id: str
    price: int
    status: ListingStatus
    buyer_id: str | None = None
    listed_at: datetime
    sold_at: datetime | None = None

    @classmethod
    def from_record(cls, listing: Listing) -> "ListingResponse":
        return cls(
            id=listing.id,
            asset_id=listing.asset_id,
            seller_id=listing.seller_id,
            price=listing.price,
            status=listing.status,
            buyer_id=listing.buyer_id,
            listed_at=listing.listed_at,
            sold_at=listing.sold_at,
        )


class AssetResponse(BaseModel):
    id: str
    owner_id: str
    name: str

    @classmethod
    def from_record(cls, asset: Asset) -> "AssetResponse":
        return cls(id=asset.id, owner_id=asset.owner_id, name=asset.name)


class ListingEnvelope(BaseModel):
    """Create/cancel response."""
    listing: ListingResponse
    message: str


class PurchaseEnvelope(BaseModel):
    """Purchase response — the sold listing and the pet under its new owner."""
    listing: ListingResponse
    asset: AssetResponse
    message: str
