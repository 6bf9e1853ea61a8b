"""Error taxonomy shared by every marketplace operation.

Each error carries the HTTP status it maps to and a short, human-readable
title; ``detail`` is the longer message shown to the user.
"""
from typing import Optional


class MarketplaceError(Exception):
    status_code: int = 400
    title: str = "Error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.title
        super().__init__(self.detail)


class NotAuthenticated(MarketplaceError):
    status_code = 401
    title = "Sign in required"


class Forbidden(MarketplaceError):
    status_code = 403
    title = "Forbidden"


class ApprovalRequired(MarketplaceError):
    status_code = 403
    title = "Vendor not approved"


class VendorSuspended(MarketplaceError):
    status_code = 403
    title = "Vendor suspended"


class NotFound(MarketplaceError):
    status_code = 404
    title = "Not found"


class VendorConflict(MarketplaceError):
    status_code = 409
    title = "Different vendor"


class OutOfStock(MarketplaceError):
    status_code = 409
    title = "Out of stock"


class InsufficientStock(MarketplaceError):
    status_code = 409
    title = "Not enough stock"


class IllegalTransition(MarketplaceError):
    status_code = 409
    title = "Illegal status change"


class StorageConflict(MarketplaceError):
    status_code = 409
    title = "Object already exists"


class EmptyCart(MarketplaceError):
    status_code = 400
    title = "Cart is empty"


class ValidationFailed(MarketplaceError):
    status_code = 422
    title = "Invalid request"


class InvalidQuantity(ValidationFailed):
    title = "Invalid quantity"


class TotalMismatch(ValidationFailed):
    title = "Order total mismatch"


class BackendFailure(MarketplaceError):
    """A store, cache or storage call failed; the cause is chained."""
    status_code = 503
    title = "Service unavailable"
