"""
Exceptions raised by the shop services.

Routes translate these into HTTP status codes; everything else is a 500.
"""

from typing import Optional


class ShopError(Exception):
    """Base class for shop errors."""

    status_code = 500


class ValidationError(ShopError):
    """Required fields are missing or a value is not allowed."""

    status_code = 400

    def __init__(self, message: str = "Missing required fields", fields: Optional[list[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class NotFoundError(ShopError):
    """A looked-up row does not exist."""

    status_code = 404


class StoreError(ShopError):
    """The database client reported a failure."""

    status_code = 500


class QuotaExceededError(ShopError):
    """A key/value write would go over the storage quota."""

    status_code = 507
