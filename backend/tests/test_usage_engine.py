"""Tests for applying usage requests to coupon snapshots."""

from datetime import timedelta
from decimal import Decimal

import pytest

from coupon_manager.core.errors import (
    AlreadyUsedError,
    CouponValidationError,
    InsufficientBalanceError,
)
from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.models.coupon_usage import UsageType
from coupon_manager.services.usage_engine import (
    PRODUCT_USED_NOTE,
    CouponSnapshot,
    apply_usage,
    format_amount,
)
from tests.conftest import NOW, days_from_now


@pytest.fixture
def money_snapshot():
    return CouponSnapshot(
        type=CouponType.MONEY,
        currency="NIS",
        remaining_amount=Decimal("100"),
        is_used=False,
        expiration_date=None,
    )


@pytest.fixture
def product_snapshot():
    return CouponSnapshot(
        type=CouponType.PRODUCT,
        currency=None,
        remaining_amount=None,
        is_used=False,
        expiration_date=None,
    )


class TestMoneyUsage:
    def test_partial_use(self, money_snapshot):
        result = apply_usage(money_snapshot, Decimal("30"), now=NOW)

        assert result.coupon.remaining_amount == Decimal("70")
        assert result.coupon.last_used == NOW
        assert result.coupon.updated_at == NOW
        assert result.status == CouponStatus.ACTIVE
        assert result.entry.type == UsageType.PARTIAL_USE
        assert result.entry.amount == Decimal("30")
        assert result.entry.remaining_after == Decimal("70")
        assert result.entry.currency == "NIS"
        assert result.entry.notes == "Used 30 NIS"

    def test_does_not_mutate_input(self, money_snapshot):
        apply_usage(money_snapshot, Decimal("30"), now=NOW)
        assert money_snapshot.remaining_amount == Decimal("100")
        assert money_snapshot.last_used is None

    def test_no_amount_uses_full_balance(self, money_snapshot):
        result = apply_usage(money_snapshot, now=NOW)
        assert result.coupon.remaining_amount == Decimal("0")
        assert result.entry.amount == Decimal("100")
        assert result.status == CouponStatus.USED

    def test_zero_amount_uses_full_balance(self, money_snapshot):
        result = apply_usage(money_snapshot, Decimal("0"), now=NOW)
        assert result.coupon.remaining_amount == Decimal("0")

    def test_exact_balance_is_used(self, money_snapshot):
        result = apply_usage(money_snapshot, Decimal("100"), now=NOW)
        assert result.status == CouponStatus.USED

    def test_amount_over_balance_rejected(self, money_snapshot):
        with pytest.raises(InsufficientBalanceError, match="exceeds remaining balance"):
            apply_usage(money_snapshot, Decimal("100.01"), now=NOW)

    def test_negative_amount_rejected(self, money_snapshot):
        with pytest.raises(CouponValidationError) as exc_info:
            apply_usage(money_snapshot, Decimal("-5"), now=NOW)
        assert exc_info.value.details[0]["field"] == "amount"

    def test_use_all_on_exhausted_balance(self):
        """Using the whole of a zero balance records a zero debit."""
        exhausted = CouponSnapshot(
            type=CouponType.MONEY,
            currency="NIS",
            remaining_amount=Decimal("0"),
            is_used=False,
            expiration_date=None,
        )
        result = apply_usage(exhausted, now=NOW)

        assert result.coupon.remaining_amount == Decimal("0")
        assert result.status == CouponStatus.USED
        assert result.entry.type == UsageType.PARTIAL_USE
        assert result.entry.amount == Decimal("0")
        assert result.entry.remaining_after == Decimal("0")
        assert result.entry.notes == "Used 0 NIS"

    def test_positive_amount_on_exhausted_balance_rejected(self):
        exhausted = CouponSnapshot(
            type=CouponType.MONEY,
            currency="NIS",
            remaining_amount=Decimal("0"),
            is_used=False,
            expiration_date=None,
        )
        with pytest.raises(InsufficientBalanceError):
            apply_usage(exhausted, Decimal("0.01"), now=NOW)

    def test_custom_notes_kept(self, money_snapshot):
        result = apply_usage(money_snapshot, Decimal("10"), notes="  Groceries  ", now=NOW)
        assert result.entry.notes == "Groceries"

    def test_blank_notes_use_default(self, money_snapshot):
        result = apply_usage(money_snapshot, Decimal("12.50"), notes="   ", now=NOW)
        assert result.entry.notes == "Used 12.5 NIS"

    def test_status_reflects_expiration(self):
        snapshot = CouponSnapshot(
            type=CouponType.MONEY,
            currency="NIS",
            remaining_amount=Decimal("50"),
            is_used=False,
            expiration_date=days_from_now(3),
        )
        result = apply_usage(snapshot, Decimal("10"), now=NOW)
        assert result.status == CouponStatus.EXPIRING

    def test_changes_write_balance(self, money_snapshot):
        result = apply_usage(money_snapshot, Decimal("30"), now=NOW)
        assert result.changes() == {
            "last_used": NOW,
            "updated_at": NOW,
            "remaining_amount": Decimal("70"),
        }


class TestProductUsage:
    def test_first_use(self, product_snapshot):
        result = apply_usage(product_snapshot, now=NOW)

        assert result.coupon.is_used is True
        assert result.coupon.last_used == NOW
        assert result.status == CouponStatus.USED
        assert result.entry.type == UsageType.USED
        assert result.entry.notes == PRODUCT_USED_NOTE
        assert result.entry.amount is None
        assert result.entry.remaining_after is None

    def test_amount_is_ignored(self, product_snapshot):
        result = apply_usage(product_snapshot, Decimal("999"), now=NOW)
        assert result.coupon.is_used is True
        assert result.entry.amount is None

    def test_second_use_rejected(self, product_snapshot):
        first = apply_usage(product_snapshot, now=NOW)
        with pytest.raises(AlreadyUsedError):
            apply_usage(first.coupon, now=NOW + timedelta(hours=1))
        assert first.coupon.last_used == NOW

    def test_changes_write_used_flag(self, product_snapshot):
        result = apply_usage(product_snapshot, notes="Spa day", now=NOW)
        assert result.entry.notes == "Spa day"
        assert result.changes() == {"last_used": NOW, "updated_at": NOW, "is_used": True}


class TestFormatAmount:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [("30.00", "30"), ("12.50", "12.5"), ("0.05", "0.05"), ("100", "100")],
    )
    def test_strips_trailing_zeros(self, amount, expected):
        assert format_amount(Decimal(amount)) == expected
