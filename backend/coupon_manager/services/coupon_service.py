"""Coupon service: store access wrapped with status and usage rules."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from coupon_manager.core.config import settings
from coupon_manager.core.errors import (
    ConcurrentModificationError,
    CouponValidationError,
    DuplicateCodeError,
    NotFoundError,
)
from coupon_manager.core.locks import coupon_locks
from coupon_manager.models.coupon import Coupon, CouponStatus, CouponType
from coupon_manager.models.shared import utc_now
from coupon_manager.repositories.coupon_repository import CouponRepository
from coupon_manager.schemas.coupon import CouponCreate, CouponResponse, CouponUpdate
from coupon_manager.services.coupon_stats import CouponStats, summarize
from coupon_manager.services.coupon_status import calculate_status
from coupon_manager.services.usage_engine import CouponSnapshot, apply_usage

logger = logging.getLogger(__name__)

_MONEY_ONLY_FIELDS = ("original_amount", "currency")


@dataclass
class CouponFilters:
    """List filters. ``status`` matches the derived status."""

    company: str | None = None
    category: str | None = None
    type: CouponType | None = None
    status: CouponStatus | None = None
    search: str | None = None
    company_contains: str | None = None


@dataclass
class CouponPage:
    coupons: list[CouponResponse]
    total: int
    limit: int
    offset: int


def _parse_id(coupon_id: UUID | str) -> UUID:
    if isinstance(coupon_id, UUID):
        return coupon_id
    try:
        return UUID(str(coupon_id))
    except ValueError:
        raise NotFoundError(coupon_id) from None


class CouponService:
    """Service for coupon business logic."""

    def __init__(self, db: Session):
        self.db = db
        self.coupon_repo = CouponRepository(db)

    def list_coupons(
        self,
        filters: CouponFilters | None = None,
        limit: int | None = None,
        offset: int = 0,
        now: datetime | None = None,
    ) -> CouponPage:
        """Filter, sort by date added (newest first) and paginate.

        The status filter needs the derived status of every candidate, so it is
        applied after the stored-field filters and before pagination. ``total``
        counts the filtered set.
        """
        filters = filters or CouponFilters()
        limit = settings.DEFAULT_PAGE_LIMIT if limit is None else limit
        current = now or utc_now()

        candidates = self.coupon_repo.get_all(
            company=filters.company,
            category=filters.category,
            coupon_type=filters.type,
            search=filters.search,
            company_contains=filters.company_contains,
        )
        rows = [(coupon, calculate_status(coupon, current)) for coupon in candidates]
        if filters.status is not None:
            rows = [(coupon, status) for coupon, status in rows if status == filters.status]

        page = rows[offset : offset + limit]
        return CouponPage(
            coupons=[CouponResponse.from_coupon(coupon, status) for coupon, status in page],
            total=len(rows),
            limit=limit,
            offset=offset,
        )

    def get_coupon(self, coupon_id: UUID | str, now: datetime | None = None) -> CouponResponse:
        coupon = self._get_or_raise(coupon_id)
        return self._to_response(coupon, now)

    def recent_coupons(
        self, limit: int | None = None, now: datetime | None = None
    ) -> list[CouponResponse]:
        """The most recently added coupons, newest first."""
        limit = settings.RECENT_COUPONS_LIMIT if limit is None else limit
        current = now or utc_now()
        return [self._to_response(c, current) for c in self.coupon_repo.get_recent(limit)]

    def stats_summary(self, now: datetime | None = None) -> CouponStats:
        return summarize(self.coupon_repo.get_all(), now)

    def create_coupon(self, data: CouponCreate, now: datetime | None = None) -> CouponResponse:
        """Validate per-type fields, reject duplicate codes and persist.

        Raises:
            CouponValidationError: A field required for the coupon type is missing.
            DuplicateCodeError: A coupon with the same code (case-sensitive) exists.
        """
        errors: list[dict[str, Any]] = []
        if data.type == CouponType.MONEY and data.original_amount is None:
            errors.append(
                {"field": "original_amount", "message": "Amount is required for money coupons"}
            )
        if data.type == CouponType.PRODUCT and not data.product_description:
            errors.append(
                {
                    "field": "product_description",
                    "message": "Product description is required for product coupons",
                }
            )
        if errors:
            raise CouponValidationError("Validation failed", errors)

        if self.coupon_repo.get_by_code(data.code):
            raise DuplicateCodeError(data.code)

        current = now or utc_now()
        currency = data.currency or settings.DEFAULT_CURRENCY
        try:
            coupon = self.coupon_repo.create(data, currency=currency, now=current)
        except IntegrityError:
            self.coupon_repo.rollback()
            raise DuplicateCodeError(data.code) from None

        logger.info("Created %s coupon %s (%s)", coupon.type, coupon.code, coupon.id)
        return self._to_response(coupon, current)

    def update_coupon(
        self,
        coupon_id: UUID | str,
        data: CouponUpdate,
        now: datetime | None = None,
    ) -> CouponResponse:
        """Merge a partial update into a coupon.

        The balance of a money coupon follows its face value: when
        ``original_amount`` changes, the amount already spent is preserved and
        the remaining balance recomputed, never below zero. The used flag of a
        product coupon is never touched.
        """
        key = str(_parse_id(coupon_id))
        changes = data.model_dump(exclude_unset=True)
        current = now or utc_now()

        with coupon_locks.hold(key):
            coupon = self._get_or_raise(coupon_id)
            self._validate_update(coupon, changes)

            if coupon.type == CouponType.MONEY:
                new_original = changes.get("original_amount")
                if new_original is not None and new_original != coupon.original_amount:
                    spent = Decimal(str(coupon.original_amount or 0)) - Decimal(
                        str(coupon.remaining_amount or 0)
                    )
                    changes["remaining_amount"] = max(Decimal("0"), new_original - spent)
                if "currency" in changes and not changes["currency"]:
                    changes["currency"] = settings.DEFAULT_CURRENCY
            else:
                for field in _MONEY_ONLY_FIELDS:
                    changes.pop(field, None)

            changes["updated_at"] = current
            try:
                coupon = self.coupon_repo.update(coupon, changes)
            except StaleDataError:
                self.coupon_repo.rollback()
                raise ConcurrentModificationError(coupon_id) from None
            except IntegrityError:
                self.coupon_repo.rollback()
                raise DuplicateCodeError(str(changes.get("code"))) from None

        logger.info("Updated coupon %s (%s)", coupon.code, coupon.id)
        return self._to_response(coupon, current)

    def use_coupon(
        self,
        coupon_id: UUID | str,
        amount: Decimal | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> CouponResponse:
        """Redeem a product coupon or debit a money coupon.

        The balance check and the write happen under the coupon's lock and a
        version check, so concurrent uses cannot overdraw the balance.

        Raises:
            NotFoundError: No coupon with this id.
            AlreadyUsedError: The product coupon was already redeemed.
            InsufficientBalanceError: The amount exceeds the remaining balance.
            ConcurrentModificationError: The coupon changed under this request.
        """
        key = str(_parse_id(coupon_id))
        current = now or utc_now()

        with coupon_locks.hold(key):
            coupon = self._get_or_raise(coupon_id)
            try:
                result = apply_usage(CouponSnapshot.from_coupon(coupon), amount, notes, current)
            except ValueError as e:
                logger.info("Rejected use of coupon %s: %s", coupon.code, e)
                raise
            try:
                coupon = self.coupon_repo.record_usage(coupon, result)
            except StaleDataError:
                self.coupon_repo.rollback()
                raise ConcurrentModificationError(coupon_id) from None

        logger.info("Used coupon %s: %s", coupon.code, result.entry.notes)
        return CouponResponse.from_coupon(coupon, result.status)

    def delete_coupon(self, coupon_id: UUID | str) -> None:
        coupon = self._get_or_raise(coupon_id)
        code = coupon.code
        self.coupon_repo.delete(coupon)
        logger.info("Deleted coupon %s (%s)", code, coupon_id)

    def _get_or_raise(self, coupon_id: UUID | str) -> Coupon:
        coupon = self.coupon_repo.get_by_id(_parse_id(coupon_id))
        if not coupon:
            raise NotFoundError(coupon_id)
        return coupon

    def _to_response(self, coupon: Coupon, now: datetime | None) -> CouponResponse:
        return CouponResponse.from_coupon(coupon, calculate_status(coupon, now))

    def _validate_update(self, coupon: Coupon, changes: dict[str, Any]) -> None:
        errors: list[dict[str, Any]] = []
        for field in ("code", "company"):
            if field in changes and not changes[field]:
                errors.append({"field": field, "message": f"{field.capitalize()} is required"})
        if coupon.type == CouponType.MONEY:
            if "original_amount" in changes and changes["original_amount"] is None:
                errors.append(
                    {"field": "original_amount", "message": "Amount is required for money coupons"}
                )
        elif "product_description" in changes and not changes["product_description"]:
            errors.append(
                {
                    "field": "product_description",
                    "message": "Product description is required for product coupons",
                }
            )
        if errors:
            raise CouponValidationError("Validation failed", errors)
