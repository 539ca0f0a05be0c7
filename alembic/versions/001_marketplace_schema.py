"""Marketplace schema — pets, currency_accounts, marketplace_listings.

Revision ID: 001_marketplace
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_marketplace"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "pets",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_pets_owner_id", "pets", ["owner_id"])

    op.create_table(
        "currency_accounts",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("balance", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("balance >= 0", name="ck_currency_accounts_balance_non_negative"),
    )

    op.create_table(
        "marketplace_listings",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("asset_id", sa.String(64), sa.ForeignKey("pets.id"), nullable=False),
        sa.Column("seller_id", sa.String(64), nullable=False),
        sa.Column("price", sa.BigInteger, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("buyer_id", sa.String(64), nullable=True),
        sa.Column("listed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("price >= 0", name="ck_marketplace_listings_price_non_negative"),
        sa.CheckConstraint(
            "status IN ('active', 'sold', 'cancelled')",
            name="ck_marketplace_listings_status",
        ),
        sa.CheckConstraint(
            "(status = 'sold') = (buyer_id IS NOT NULL AND sold_at IS NOT NULL)",
            name="ck_marketplace_listings_sold_fields",
        ),
    )
    op.create_index("ix_marketplace_listings_asset_id", "marketplace_listings", ["asset_id"])
    op.create_index("ix_marketplace_listings_seller_id", "marketplace_listings", ["seller_id"])
    op.create_index(
        "uq_marketplace_listings_active_asset",
        "marketplace_listings",
        ["asset_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    op.drop_index("uq_marketplace_listings_active_asset", table_name="marketplace_listings")
    op.drop_index("ix_marketplace_listings_seller_id", table_name="marketplace_listings")
    op.drop_index("ix_marketplace_listings_asset_id", table_name="marketplace_listings")
    op.drop_table("marketplace_listings")
    op.drop_table("currency_accounts")
    op.drop_index("ix_pets_owner_id", table_name="pets")
    op.drop_table("pets")
