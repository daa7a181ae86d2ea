from coupon_manager.schemas.coupon import (
    CouponCreate,
    CouponListResponse,
    CouponResponse,
    CouponStatsResponse,
    CouponUpdate,
    CouponUsageResponse,
    UseCouponRequest,
)
from coupon_manager.schemas.health import HealthResponse
from coupon_manager.schemas.telegram import TelegramUpdate

__all__ = [
    "CouponCreate",
    "CouponListResponse",
    "CouponResponse",
    "CouponStatsResponse",
    "CouponUpdate",
    "CouponUsageResponse",
    "HealthResponse",
    "TelegramUpdate",
    "UseCouponRequest",
]
