"""MarketplaceListing ORM — an offer to sell one pet at a fixed price.

Invariants:
    - status transitions: active -> sold | active -> cancelled (terminal)
    - buyer_id and sold_at non-null iff status == 'sold' (CHECK constraint)
    - At most one 'active' row per asset_id (partial unique index)
    - price >= 0

Design Decisions:
    - New row per listing: relisting a pet never reuses a sold or cancelled row,
      old rows remain as sale history
    - Partial unique index declared for both PostgreSQL and SQLite so tests
      exercise the same constraint production relies on
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, CheckConstraint, DateTime, ForeignKey, Index, String, text,
)
from sqlalchemy.orm import Mapped, mapped_column

from petmarket.core.domain_types import ListingStatus
from petmarket.db.base import Base


class MarketplaceListing(Base):
    """Listing entity — status state machine guarded by compare-and-swap updates."""
    __tablename__ = "marketplace_listings"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_marketplace_listings_price_non_negative"),
        CheckConstraint(
            "status IN ('active', 'sold', 'cancelled')",
            name="ck_marketplace_listings_status",
        ),
        CheckConstraint(
            "(status = 'sold') = (buyer_id IS NOT NULL AND sold_at IS NOT NULL)",
            name="ck_marketplace_listings_sold_fields",
        ),
        Index(
            "uq_marketplace_listings_active_asset",
            "asset_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    asset_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("pets.id"), nullable=False, index=True,
    )
    seller_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ListingStatus.ACTIVE.value,
    )
    buyer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    listed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    sold_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
