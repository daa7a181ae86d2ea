"""CouponUsage model: append-only redemption log of a coupon."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from coupon_manager.core.database import Base
from coupon_manager.models.shared import UUIDType, generate_uuid, utc_now


class UsageType(str, Enum):
    USED = "used"
    PARTIAL_USE = "partial_use"


class CouponUsage(Base):
    """One usage event. Money coupons log ``partial_use``, product coupons ``used``."""

    __tablename__ = "coupon_usage"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    coupon_id = Column(
        UUIDType, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    type = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=True)
    currency = Column(String(3), nullable=True)
    remaining_after = Column(Numeric(12, 2), nullable=True)
    notes = Column(Text, nullable=True)

    coupon = relationship("Coupon", back_populates="usage_history")
