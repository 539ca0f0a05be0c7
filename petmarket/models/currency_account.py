"""CurrencyAccount ORM — per-user balance of the internal currency.

Invariants:
    - user_id is the primary key: one account per user
    - balance >= 0 (CHECK constraint backs the conditional debit)
    - A missing row is not a zero balance: buyers need a row, sellers get one on credit
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from petmarket.db.base import Base


class CurrencyAccount(Base):
    """Currency account entity — one per user, created lazily."""
    __tablename__ = "currency_accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_currency_accounts_balance_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
