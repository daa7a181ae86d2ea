"""Applying a usage request to a coupon.

The engine works on an immutable snapshot and returns the updated snapshot
together with the history entry to append. It never touches the database, so
a rejected request leaves the stored coupon exactly as it was; the caller
persists a successful result in a single transaction.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from coupon_manager.core.errors import (
    AlreadyUsedError,
    CouponValidationError,
    InsufficientBalanceError,
)
from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.models.coupon_usage import UsageType
from coupon_manager.models.shared import utc_now
from coupon_manager.services.coupon_status import calculate_status

PRODUCT_USED_NOTE = "Service voucher used"


@dataclass(frozen=True)
class CouponSnapshot:
    """The usage-relevant fields of a coupon at one point in time."""

    type: CouponType
    currency: str | None
    remaining_amount: Decimal | None
    is_used: bool
    expiration_date: date | None
    last_used: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_coupon(cls, coupon: Any) -> "CouponSnapshot":
        remaining = coupon.remaining_amount
        return cls(
            type=CouponType(coupon.type),
            currency=coupon.currency,
            remaining_amount=Decimal(str(remaining)) if remaining is not None else None,
            is_used=bool(coupon.is_used),
            expiration_date=coupon.expiration_date,
            last_used=coupon.last_used,
            updated_at=coupon.updated_at,
        )


@dataclass(frozen=True)
class UsageEntry:
    """One usage-history event."""

    date: datetime
    type: UsageType
    notes: str
    amount: Decimal | None = None
    currency: str | None = None
    remaining_after: Decimal | None = None


@dataclass(frozen=True)
class UsageResult:
    coupon: CouponSnapshot
    entry: UsageEntry
    status: CouponStatus

    def changes(self) -> dict[str, Any]:
        """Coupon column values to write back."""
        values: dict[str, Any] = {
            "last_used": self.coupon.last_used,
            "updated_at": self.coupon.updated_at,
        }
        if self.coupon.type == CouponType.MONEY:
            values["remaining_amount"] = self.coupon.remaining_amount
        else:
            values["is_used"] = self.coupon.is_used
        return values


def format_amount(amount: Decimal) -> str:
    """Render an amount without trailing zeros (``30.00`` -> ``30``)."""
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def apply_usage(
    snapshot: CouponSnapshot,
    amount: Decimal | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> UsageResult:
    """Validate and apply one usage of ``snapshot``.

    Product coupons are redeemed once and ignore ``amount``. Money coupons are
    debited by ``amount``, or by the whole remaining balance when no positive
    amount is given.

    Raises:
        AlreadyUsedError: The product coupon was already redeemed.
        InsufficientBalanceError: The amount exceeds the remaining balance.
        CouponValidationError: The amount is negative.
    """
    timestamp = now or utc_now()
    note = notes.strip() if notes else ""

    if snapshot.type == CouponType.PRODUCT:
        if snapshot.is_used:
            raise AlreadyUsedError()
        updated = replace(snapshot, is_used=True, last_used=timestamp, updated_at=timestamp)
        entry = UsageEntry(
            date=timestamp,
            type=UsageType.USED,
            notes=note or PRODUCT_USED_NOTE,
        )
        return UsageResult(coupon=updated, entry=entry, status=calculate_status(updated, timestamp))

    remaining = snapshot.remaining_amount or Decimal("0")
    if amount is not None and amount < 0:
        raise CouponValidationError(
            "Amount must be positive",
            [{"field": "amount", "message": "Amount must be positive"}],
        )
    effective = amount if amount is not None and amount > 0 else remaining
    if effective > remaining:
        raise InsufficientBalanceError()

    new_remaining = remaining - effective
    updated = replace(
        snapshot,
        remaining_amount=new_remaining,
        last_used=timestamp,
        updated_at=timestamp,
    )
    entry = UsageEntry(
        date=timestamp,
        type=UsageType.PARTIAL_USE,
        notes=note or f"Used {format_amount(effective)} {snapshot.currency or ''}".rstrip(),
        amount=effective,
        currency=snapshot.currency,
        remaining_after=new_remaining,
    )
    return UsageResult(coupon=updated, entry=entry, status=calculate_status(updated, timestamp))
