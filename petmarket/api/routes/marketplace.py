"""Marketplace Routes — list, inspect, purchase and cancel pet listings.

Invariants:
    - Every write goes through MarketplaceCoordinator (one unit of work per request)
    - Domain errors propagate to the global MarketplaceError handler unchanged
    - Success messages are stable strings a UI can display verbatim
"""

import logging

from fastapi import APIRouter, Depends, status

from petmarket.api.dependencies import get_coordinator, get_current_user_id
from petmarket.schemas.listing import (
    AssetResponse,
    ListingCreate,
    ListingEnvelope,
    ListingResponse,
    PurchaseEnvelope,
)
from petmarket.services.marketplace import MarketplaceCoordinator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/marketplace", tags=["marketplace"])


@router.post(
    "/listings", response_model=ListingEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_listing(
    body: ListingCreate,
    user_id: str = Depends(get_current_user_id),
    coordinator: MarketplaceCoordinator = Depends(get_coordinator),
):
    """List one of the caller's pets for sale."""
    listing = await coordinator.create_listing(body.asset_id, user_id, body.price)
    return ListingEnvelope(
        listing=ListingResponse.from_record(listing),
        message="Pet listed successfully",
    )


@router.get("/listings/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: str,
    coordinator: MarketplaceCoordinator = Depends(get_coordinator),
):
    listing = await coordinator.get_listing(listing_id)
    return ListingResponse.from_record(listing)


@router.post("/listings/{listing_id}/purchase", response_model=PurchaseEnvelope)
async def purchase_listing(
    listing_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MarketplaceCoordinator = Depends(get_coordinator),
):
    """Buy the listed pet with the caller's currency."""
    result = await coordinator.purchase_pet(listing_id, user_id)
    return PurchaseEnvelope(
        listing=ListingResponse.from_record(result.listing),
        asset=AssetResponse.from_record(result.asset),
        message="Pet purchased successfully",
    )


@router.post("/listings/{listing_id}/cancel", response_model=ListingEnvelope)
async def cancel_listing(
    listing_id: str,
    user_id: str = Depends(get_current_user_id),
    coordinator: MarketplaceCoordinator = Depends(get_coordinator),
):
    """Withdraw one of the caller's unsold listings."""
    listing = await coordinator.cancel_listing(listing_id, user_id)
    return ListingEnvelope(
        listing=ListingResponse.from_record(listing),
        message="Listing cancelled successfully",
    )
