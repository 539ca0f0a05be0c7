"""Shared test constants, a deterministic clock and the committed-state snapshot type."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

SELLER = "user-seller"
BUYER = "user-buyer"
POOR_BUYER = "user-poor-buyer"

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Advances one second per call so listed_at < sold_at."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@dataclass(frozen=True)
class MarketState:
    owner_id: str | None
    listing_status: str | None
    buyer_id: str | None
    balances: dict[str, int | None]
