"""Domain errors raised by the coupon services.

Each error carries the HTTP status the routers answer with. Every error is
terminal for the request; nothing in the services retries.
"""

from typing import Any


class CouponError(ValueError):
    """Base class for rejected coupon operations."""

    status_code = 400


class CouponValidationError(CouponError):
    """A required field is missing or malformed."""

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.details = details or []


class DuplicateCodeError(CouponError):
    def __init__(self, code: str):
        super().__init__("Coupon code already exists")
        self.code = code


class NotFoundError(CouponError):
    status_code = 404

    def __init__(self, coupon_id: object):
        super().__init__("Coupon not found")
        self.coupon_id = coupon_id


class InsufficientBalanceError(CouponError):
    def __init__(self, message: str = "Amount exceeds remaining balance"):
        super().__init__(message)


class AlreadyUsedError(CouponError):
    def __init__(self) -> None:
        super().__init__("Product coupon already used")


class ConcurrentModificationError(CouponError):
    status_code = 409

    def __init__(self, coupon_id: object):
        super().__init__("Coupon was modified concurrently, please retry")
        self.coupon_id = coupon_id
