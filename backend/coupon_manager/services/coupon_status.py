"""Coupon status derivation.

Status is never stored. It is computed from the coupon's own fields and the
current time every time it is needed, because expiration moves with the
clock even when nothing is written.
"""

import math
from datetime import UTC, date, datetime, time
from typing import Any

from coupon_manager.core.config import settings
from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.models.shared import ensure_utc, utc_now

SECONDS_PER_DAY = 24 * 60 * 60


def days_until_expiration(expiration_date: date, now: datetime | None = None) -> int:
    """Whole days left until ``expiration_date``, fractional days rounded up.

    A date expires at the start of that day (UTC midnight), so a coupon
    expiring today reports 0 and one that expired yesterday reports -1.
    """
    current = ensure_utc(now) if now is not None else utc_now()
    if isinstance(expiration_date, datetime):
        expires_at = ensure_utc(expiration_date)
    else:
        expires_at = datetime.combine(expiration_date, time.min, tzinfo=UTC)
    return math.ceil((expires_at - current).total_seconds() / SECONDS_PER_DAY)


def is_spent(coupon: Any) -> bool:
    """True when a product coupon was redeemed or a money coupon has no balance left."""
    if coupon.type == CouponType.PRODUCT:
        return bool(coupon.is_used)
    if coupon.type == CouponType.MONEY:
        return (coupon.remaining_amount or 0) <= 0
    return False


def calculate_status(
    coupon: Any,
    now: datetime | None = None,
    expiring_days: int | None = None,
) -> CouponStatus:
    """Return the status of ``coupon`` at ``now``.

    ``coupon`` is anything exposing ``type``, ``is_used``, ``remaining_amount``
    and ``expiration_date``. Usage state takes precedence over expiration: a
    spent coupon reports ``used`` even after its expiration date.
    """
    if is_spent(coupon):
        return CouponStatus.USED

    if coupon.expiration_date is not None:
        window = settings.EXPIRING_SOON_DAYS if expiring_days is None else expiring_days
        days_left = days_until_expiration(coupon.expiration_date, now)
        if days_left < 0:
            return CouponStatus.EXPIRED
        if days_left <= window:
            return CouponStatus.EXPIRING

    return CouponStatus.ACTIVE
