from coupon_manager.models.coupon import Coupon, CouponStatus, CouponType
from coupon_manager.models.coupon_usage import CouponUsage, UsageType
from coupon_manager.models.idempotency_record import IdempotencyRecord

__all__ = [
    "Coupon",
    "CouponStatus",
    "CouponType",
    "CouponUsage",
    "IdempotencyRecord",
    "UsageType",
]
