"""Summary statistics over a set of coupons."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.models.shared import utc_now
from coupon_manager.services.coupon_status import calculate_status


@dataclass
class CouponStats:
    total_coupons: int
    active_money_coupons: int
    active_product_coupons: int
    expiring_soon: int
    total_value: Decimal
    total_companies: int
    total_categories: int


def summarize(coupons: Iterable[Any], now: datetime | None = None) -> CouponStats:
    """Compute the dashboard summary, deriving every status at ``now``.

    ``total_value`` is the raw sum of remaining balances of all money coupons,
    whatever their status.
    """
    current = now or utc_now()
    total = 0
    active_money = 0
    active_product = 0
    expiring = 0
    total_value = Decimal("0")
    companies: set[str] = set()
    categories: set[str] = set()

    for coupon in coupons:
        total += 1
        status = calculate_status(coupon, current)
        if coupon.type == CouponType.MONEY:
            total_value += Decimal(str(coupon.remaining_amount or 0))
            if status == CouponStatus.ACTIVE:
                active_money += 1
        elif coupon.type == CouponType.PRODUCT and status == CouponStatus.ACTIVE:
            active_product += 1
        if status == CouponStatus.EXPIRING:
            expiring += 1
        companies.add(coupon.company)
        if coupon.category:
            categories.add(coupon.category)

    return CouponStats(
        total_coupons=total,
        active_money_coupons=active_money,
        active_product_coupons=active_product,
        expiring_soon=expiring,
        total_value=total_value,
        total_companies=len(companies),
        total_categories=len(categories),
    )


def count_by_status(coupons: Iterable[Any], now: datetime | None = None) -> dict[str, int]:
    """Number of coupons per derived status, every status present, plus ``total``."""
    current = now or utc_now()
    counts = Counter(calculate_status(coupon, current) for coupon in coupons)
    summary = {status.value: counts.get(status, 0) for status in CouponStatus}
    summary["total"] = sum(counts.values())
    return summary
