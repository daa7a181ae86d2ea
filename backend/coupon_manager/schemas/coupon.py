"""Coupon request and response schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator

from coupon_manager.models.coupon import CouponStatus, CouponType
from coupon_manager.models.coupon_usage import UsageType

# Amounts are Decimal internally and plain JSON numbers on the wire.
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_OPTIONAL_TEXT_FIELDS = ("currency", "product_description", "category", "notes", "expiration_date")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CouponCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(min_length=1, max_length=100)
    company: str = Field(min_length=1, max_length=255)
    type: CouponType
    original_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    product_description: str | None = None
    category: str | None = Field(default=None, max_length=100)
    expiration_date: date | None = None
    notes: str | None = None

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_optional_fields(cls, value: Any) -> Any:
        return _blank_to_none(value)


class CouponUpdate(BaseModel):
    """Partial update. Balance and used flag are not editable here."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str | None = Field(default=None, min_length=1, max_length=100)
    company: str | None = Field(default=None, min_length=1, max_length=255)
    original_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    product_description: str | None = None
    category: str | None = Field(default=None, max_length=100)
    expiration_date: date | None = None
    notes: str | None = None

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_optional_fields(cls, value: Any) -> Any:
        return _blank_to_none(value)


class UseCouponRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    notes: str | None = None


class CouponUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime
    type: UsageType
    amount: Amount | None = None
    currency: str | None = None
    remaining_after: Amount | None = None
    notes: str | None = None


class CouponFields(BaseModel):
    """Stored coupon fields, read straight from the model."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    company: str
    type: CouponType
    original_amount: Amount | None = None
    remaining_amount: Amount | None = None
    currency: str | None = None
    product_description: str | None = None
    is_used: bool = False
    category: str | None = None
    expiration_date: date | None = None
    notes: str | None = None
    date_added: datetime
    last_used: datetime | None = None
    created_at: datetime
    updated_at: datetime
    usage_history: list[CouponUsageResponse] = []


class CouponResponse(CouponFields):
    """A coupon with its status derived at read time."""

    status: CouponStatus

    @classmethod
    def from_coupon(cls, coupon: Any, status: CouponStatus) -> "CouponResponse":
        fields = CouponFields.model_validate(coupon)
        return cls.model_validate({**dict(fields), "status": status})


class CouponListResponse(BaseModel):
    coupons: list[CouponResponse]
    total: int
    limit: int
    offset: int


class CouponStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_coupons: int
    active_money_coupons: int
    active_product_coupons: int
    expiring_soon: int
    total_value: Amount
    total_companies: int
    total_categories: int
