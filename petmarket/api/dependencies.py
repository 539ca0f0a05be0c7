"""Route Dependencies — coordinator wiring and caller identity for marketplace routes.

Invariants:
    - Routes receive a MarketplaceCoordinator, never a session or engine
    - The acting user id comes from the X-User-Id header set by the auth gateway

Design Decisions:
    - Authentication lives in front of this service; the header is trusted as-is
"""

from fastapi import Depends, Header

from petmarket.infrastructure.database import DatabaseSessionManager, get_db_manager
from petmarket.services.marketplace import MarketplaceCoordinator


def get_coordinator(
    manager: DatabaseSessionManager = Depends(get_db_manager),
) -> MarketplaceCoordinator:
    return MarketplaceCoordinator(manager.unit_of_work)


def get_current_user_id(
    x_user_id: str = Header(min_length=1, max_length=64),
) -> str:
    return x_user_id
