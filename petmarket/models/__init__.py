"""ORM Models — SQLAlchemy declarative models for pets, balances and listings.

Invariants:
    - All models inherit from Base (db/base.py)
    - Only infrastructure/sql_stores.py reads or writes these models

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all
"""

from petmarket.models.pet import Pet  # noqa: F401
from petmarket.models.currency_account import CurrencyAccount  # noqa: F401
from petmarket.models.marketplace_listing import MarketplaceListing  # noqa: F401
