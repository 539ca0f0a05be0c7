"""Error Hierarchy — typed, categorized exceptions for every marketplace failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Each error kind carries one stable user-facing message
    - InternalFailureError is the only retryable kind
    - to_response() produces the REST envelope; no internal details leak into it

Design Decisions:
    - Single hierarchy with MarketplaceError base: FastAPI global handler catches all
    - ErrorContext as dataclass: ids for observability without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERMISSION = "permission"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Identifiers attached to an error for logs and the response envelope."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    listing_id: str | None = None
    asset_id: str | None = None
    user_id: str | None = None


class MarketplaceError(Exception):
    """Base exception for all marketplace errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "listing_id": self.context.listing_id,
                    "asset_id": self.context.asset_id,
                },
            }
        }


# ─── Validation Errors (caught before any store access) ─────────

class InvalidArgumentError(MarketplaceError):
    """Malformed or missing input."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_ARGUMENT", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


# ─── Not Found ──────────────────────────────────────────────────

class AssetNotFoundError(MarketplaceError):
    """Pet does not exist."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Pet not found",
            "ASSET_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


class ListingNotFoundError(MarketplaceError):
    """Listing does not exist."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Listing not found",
            "LISTING_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


class AccountNotFoundError(MarketplaceError):
    """Ledger-level: no currency account exists for the user."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Currency account not found",
            "ACCOUNT_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


class BuyerAccountNotFoundError(MarketplaceError):
    """Buyer has never held currency, so cannot pay."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Buyer currency account not found",
            "BUYER_ACCOUNT_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )


# ─── Business Rule Errors ───────────────────────────────────────

class NotOwnerError(MarketplaceError):
    """Caller does not own the pet or listing being acted on."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "NOT_OWNER", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class AlreadyListedError(MarketplaceError):
    """Pet already has an active listing."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Pet is already listed on the marketplace",
            "ALREADY_LISTED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ListingNotAvailableError(MarketplaceError):
    """Listing exists but is sold, cancelled, or was just bought by someone else."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Listing is not available for purchase",
            "LISTING_NOT_AVAILABLE", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class ListingNotActiveError(MarketplaceError):
    """Cancel attempted on a listing that already reached a terminal state."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Only active listings can be cancelled",
            "LISTING_NOT_ACTIVE", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class CannotPurchaseOwnListingError(MarketplaceError):
    """Seller attempted to buy their own listing."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "You cannot purchase your own pet",
            "CANNOT_PURCHASE_OWN_LISTING", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )


class InsufficientFundsError(MarketplaceError):
    """Balance lower than the amount to debit."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Insufficient funds",
            "INSUFFICIENT_FUNDS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 402,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class InternalFailureError(MarketplaceError):
    """Storage or transaction fault. Nothing was committed; safe to retry."""

    retryable = True

    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            "The marketplace is temporarily unavailable, please retry",
            "INTERNAL_FAILURE", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
