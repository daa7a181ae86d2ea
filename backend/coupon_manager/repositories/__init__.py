from coupon_manager.repositories.coupon_repository import CouponRepository
from coupon_manager.repositories.idempotency_repository import IdempotencyRepository

__all__ = [
    "CouponRepository",
    "IdempotencyRepository",
]
