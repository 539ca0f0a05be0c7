"""Pet ORM — the ownable asset traded on the marketplace.

Invariants:
    - owner_id is never null: a pet has exactly one owner at all times
    - owner_id changes only when a listing for the pet is sold

Design Decisions:
    - Gameplay attributes (stats, traits, appearance) live elsewhere; only name is kept
      as display payload
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from petmarket.db.base import Base


class Pet(Base):
    """Pet entity — owned by exactly one user."""
    __tablename__ = "pets"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    owner_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
