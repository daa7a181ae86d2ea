"""Coupon model for gift cards and service vouchers."""

from enum import Enum

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from coupon_manager.core.database import Base
from coupon_manager.models.shared import UUIDType, generate_uuid, utc_now


class CouponType(str, Enum):
    MONEY = "money"
    PRODUCT = "product"


class CouponStatus(str, Enum):
    """Derived status. Never stored; see services.coupon_status."""

    ACTIVE = "active"
    USED = "used"
    EXPIRING = "expiring"
    EXPIRED = "expired"


class Coupon(Base):
    """A money coupon with a spendable balance or a single-use product coupon."""

    __tablename__ = "coupons"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    code = Column(String(100), unique=True, index=True, nullable=False)
    company = Column(String(255), index=True, nullable=False)
    type = Column(String(20), nullable=False)

    # Money coupons
    original_amount = Column(Numeric(12, 2), nullable=True)
    remaining_amount = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=True)

    # Product coupons
    product_description = Column(Text, nullable=True)
    is_used = Column(Boolean, nullable=False, default=False)

    category = Column(String(100), index=True, nullable=True)
    expiration_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    date_added = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    last_used = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    usage_history = relationship(
        "CouponUsage",
        back_populates="coupon",
        order_by="CouponUsage.date",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}
