"""purchase_pet — transfer of currency and ownership, and all-or-nothing failure.

Tests cover:
    - Seller 500 lists for 200, buyer 1000 buys → 800 / 700, buyer owns pet, listing sold
    - Currency conservation across buyer + seller
    - Seller without an account gets one holding the proceeds
    - Every rejection (steps 2–6) leaves owner, balances and status unchanged
    - A storage fault mid-purchase surfaces as retryable InternalFailure with nothing committed
    - Buyer and seller accounts are written in user_id order
"""

import pytest
from sqlalchemy.exc import OperationalError

from petmarket.core.domain_types import ListingStatus
from petmarket.core.errors import (
    BuyerAccountNotFoundError,
    CannotPurchaseOwnListingError,
    InsufficientFundsError,
    InternalFailureError,
    InvalidArgumentError,
    ListingNotAvailableError,
    ListingNotFoundError,
)
from petmarket.infrastructure.sql_stores import SqlCurrencyLedger
from tests.helpers import BUYER, POOR_BUYER, SELLER


@pytest.fixture
async def listing(coordinator, market):
    return await coordinator.create_listing(market["asset_id"], SELLER, 200)


async def test_purchase_moves_currency_and_pet(coordinator, market, listing, read_state):
    result = await coordinator.purchase_pet(listing.id, BUYER)

    assert result.listing.status is ListingStatus.SOLD
    assert result.listing.buyer_id == BUYER
    assert result.listing.sold_at is not None
    assert result.listing.sold_at > result.listing.listed_at
    assert result.asset.owner_id == BUYER

    state = await read_state(market["asset_id"], listing.id, BUYER, SELLER)
    assert state.owner_id == BUYER
    assert state.listing_status == "sold"
    assert state.buyer_id == BUYER
    assert state.balances == {BUYER: 800, SELLER: 700}


async def test_purchase_conserves_currency(coordinator, market, listing, read_state):
    before = await read_state(market["asset_id"], listing.id, BUYER, SELLER)
    await coordinator.purchase_pet(listing.id, BUYER)
    after = await read_state(market["asset_id"], listing.id, BUYER, SELLER)

    assert sum(before.balances.values()) == sum(after.balances.values())


async def test_purchase_with_exact_balance(coordinator, seed, read_state):
    asset_id = await seed.pet(SELLER)
    await seed.account("exact-buyer", 200)
    await seed.account(SELLER, 0)
    listing = await coordinator.create_listing(asset_id, SELLER, 200)

    await coordinator.purchase_pet(listing.id, "exact-buyer")

    state = await read_state(asset_id, listing.id, "exact-buyer", SELLER)
    assert state.balances == {"exact-buyer": 0, SELLER: 200}


async def test_seller_account_created_on_first_sale(coordinator, seed, read_state):
    asset_id = await seed.pet("new-seller")
    await seed.account(BUYER, 1000)
    listing = await coordinator.create_listing(asset_id, "new-seller", 250)

    await coordinator.purchase_pet(listing.id, BUYER)

    state = await read_state(asset_id, listing.id, BUYER, "new-seller")
    assert state.balances == {BUYER: 750, "new-seller": 250}


async def test_free_listing_transfers_pet_without_currency(coordinator, seed, read_state):
    asset_id = await seed.pet(SELLER)
    await seed.account(BUYER, 0)
    listing = await coordinator.create_listing(asset_id, SELLER, 0)

    result = await coordinator.purchase_pet(listing.id, BUYER)

    assert result.asset.owner_id == BUYER
    state = await read_state(asset_id, listing.id, BUYER, SELLER)
    assert state.balances == {BUYER: 0, SELLER: 0}


# ─── Rejections leave everything untouched ───────────────────────

async def _assert_untouched(read_state, asset_id, listing_id, before):
    after = await read_state(asset_id, listing_id, *before.balances)
    assert after == before


async def test_insufficient_funds(coordinator, market, listing, read_state):
    before = await read_state(market["asset_id"], listing.id, POOR_BUYER, SELLER)

    with pytest.raises(InsufficientFundsError, match="Insufficient funds"):
        await coordinator.purchase_pet(listing.id, POOR_BUYER)

    await _assert_untouched(read_state, market["asset_id"], listing.id, before)


async def test_cannot_purchase_own_listing(coordinator, market, listing, read_state):
    before = await read_state(market["asset_id"], listing.id, SELLER)

    with pytest.raises(CannotPurchaseOwnListingError, match="your own pet"):
        await coordinator.purchase_pet(listing.id, SELLER)

    await _assert_untouched(read_state, market["asset_id"], listing.id, before)


async def test_buyer_without_account(coordinator, market, listing, read_state):
    before = await read_state(market["asset_id"], listing.id, "accountless-buyer", SELLER)

    with pytest.raises(BuyerAccountNotFoundError):
        await coordinator.purchase_pet(listing.id, "accountless-buyer")

    await _assert_untouched(read_state, market["asset_id"], listing.id, before)
    assert before.balances["accountless-buyer"] is None


async def test_unknown_listing(coordinator, market):
    with pytest.raises(ListingNotFoundError, match="Listing not found"):
        await coordinator.purchase_pet("missing-listing", BUYER)


@pytest.mark.parametrize("listing_id, buyer_id", [("", BUYER), ("l1", ""), ("l1", "  ")])
async def test_purchase_requires_ids(coordinator, listing_id, buyer_id):
    with pytest.raises(InvalidArgumentError):
        await coordinator.purchase_pet(listing_id, buyer_id)


async def test_already_sold_listing(coordinator, market, listing, seed, read_state):
    await coordinator.purchase_pet(listing.id, BUYER)
    await seed.account("second-buyer", 1000)
    before = await read_state(market["asset_id"], listing.id, BUYER, SELLER, "second-buyer")

    with pytest.raises(ListingNotAvailableError, match="not available for purchase"):
        await coordinator.purchase_pet(listing.id, "second-buyer")

    await _assert_untouched(read_state, market["asset_id"], listing.id, before)


async def test_cancelled_listing(coordinator, market, listing, read_state):
    await coordinator.cancel_listing(listing.id, SELLER)
    before = await read_state(market["asset_id"], listing.id, BUYER, SELLER)

    with pytest.raises(ListingNotAvailableError):
        await coordinator.purchase_pet(listing.id, BUYER)

    await _assert_untouched(read_state, market["asset_id"], listing.id, before)


async def test_storage_fault_rolls_back_partial_purchase(
    coordinator, market, listing, read_state, monkeypatch,
):
    """Listing CAS and buyer debit already ran when the seller credit fails."""
    async def failing_credit(self, user_id, amount):
        raise OperationalError("INSERT INTO currency_accounts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(SqlCurrencyLedger, "credit", failing_credit)
    before = await read_state(market["asset_id"], listing.id, BUYER, SELLER)

    with pytest.raises(InternalFailureError) as exc:
        await coordinator.purchase_pet(listing.id, BUYER)

    assert exc.value.retryable is True
    assert exc.value.context.listing_id == listing.id
    await _assert_untouched(read_state, market["asset_id"], listing.id, before)
    assert before.listing_status == "active"


@pytest.mark.parametrize("buyer_id, expected", [
    ("aa-buyer", ["aa-buyer", SELLER]),
    ("zz-buyer", [SELLER, "zz-buyer"]),
])
async def test_accounts_written_in_user_id_order(
    coordinator, market, seed, listing, monkeypatch, buyer_id, expected,
):
    await seed.account(buyer_id, 1000)
    touched = []
    original_debit = SqlCurrencyLedger.debit
    original_credit = SqlCurrencyLedger.credit

    async def recording_debit(self, user_id, amount):
        touched.append(user_id)
        return await original_debit(self, user_id, amount)

    async def recording_credit(self, user_id, amount):
        touched.append(user_id)
        return await original_credit(self, user_id, amount)

    monkeypatch.setattr(SqlCurrencyLedger, "debit", recording_debit)
    monkeypatch.setattr(SqlCurrencyLedger, "credit", recording_credit)

    await coordinator.purchase_pet(listing.id, buyer_id)

    assert touched == expected
