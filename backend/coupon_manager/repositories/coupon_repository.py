"""Coupon repository for data access."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from coupon_manager.models.coupon import Coupon, CouponType
from coupon_manager.models.coupon_usage import CouponUsage
from coupon_manager.schemas.coupon import CouponCreate
from coupon_manager.services.usage_engine import UsageResult


class CouponRepository:
    """Repository for Coupon model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        company: str | None = None,
        category: str | None = None,
        coupon_type: CouponType | None = None,
        search: str | None = None,
        company_contains: str | None = None,
    ) -> list[Coupon]:
        """Get coupons matching the stored-field filters, newest first.

        ``company``, ``category`` and ``coupon_type`` match exactly; ``search``
        is a case-insensitive substring match over code, company, product
        description and notes.
        """
        query = self.db.query(Coupon)

        if company:
            query = query.filter(Coupon.company == company)
        if category:
            query = query.filter(Coupon.category == category)
        if coupon_type:
            query = query.filter(Coupon.type == coupon_type.value)
        if company_contains:
            query = query.filter(
                func.lower(Coupon.company).contains(company_contains.lower(), autoescape=True)
            )
        if search:
            term = search.lower()
            query = query.filter(
                or_(
                    func.lower(Coupon.code).contains(term, autoescape=True),
                    func.lower(Coupon.company).contains(term, autoescape=True),
                    func.lower(Coupon.product_description).contains(term, autoescape=True),
                    func.lower(Coupon.notes).contains(term, autoescape=True),
                )
            )

        return query.order_by(Coupon.date_added.desc()).all()

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        """Get a coupon by ID."""
        return self.db.query(Coupon).filter(Coupon.id == coupon_id).first()

    def get_by_code(self, code: str) -> Coupon | None:
        """Get a coupon by code (case-sensitive)."""
        return self.db.query(Coupon).filter(Coupon.code == code).first()

    def get_recent(self, limit: int) -> list[Coupon]:
        """Get the most recently added coupons."""
        return self.db.query(Coupon).order_by(Coupon.date_added.desc()).limit(limit).all()

    def create(self, data: CouponCreate, currency: str | None, now: datetime) -> Coupon:
        """Create a new coupon with its balance or used flag initialised."""
        is_money = data.type == CouponType.MONEY
        coupon = Coupon(
            code=data.code,
            company=data.company,
            type=data.type.value,
            original_amount=data.original_amount if is_money else None,
            remaining_amount=data.original_amount if is_money else None,
            currency=currency if is_money else None,
            product_description=data.product_description,
            is_used=False,
            category=data.category,
            expiration_date=data.expiration_date,
            notes=data.notes,
            date_added=now,
            created_at=now,
            updated_at=now,
        )
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def update(self, coupon: Coupon, changes: dict[str, Any]) -> Coupon:
        """Write field changes to a coupon."""
        for key, value in changes.items():
            setattr(coupon, key, value)

        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def record_usage(self, coupon: Coupon, result: UsageResult) -> Coupon:
        """Write a usage result and append its history entry in one commit."""
        for key, value in result.changes().items():
            setattr(coupon, key, value)

        entry = result.entry
        coupon.usage_history.append(
            CouponUsage(
                date=entry.date,
                type=entry.type.value,
                amount=entry.amount,
                currency=entry.currency,
                remaining_after=entry.remaining_after,
                notes=entry.notes,
            )
        )

        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete(self, coupon: Coupon) -> None:
        """Hard-delete a coupon and its usage history."""
        self.db.delete(coupon)
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
