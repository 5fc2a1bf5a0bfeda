"""Pydantic schemas for coupon validation and administration."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.smm_common.enums import CouponType
from src.smm_coupon.domain.models import Coupon


class ValidateCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    type: CouponType | None = Field(None, description="Where the coupon will be applied")


class CreateCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    discount_percent: Decimal = Field(..., gt=0, le=100)
    usage_limit: int = Field(0, ge=0, description="0 = unlimited")
    expires_at: datetime | None = None
    is_auto_apply: bool = False
    type: CouponType = CouponType.DISCOUNT


class CouponResponse(BaseModel):
    id: str
    code: str
    discount_percent: Decimal
    usage_limit: int
    used_count: int
    expires_at: datetime | None = None
    is_auto_apply: bool
    type: CouponType
    created_at: datetime
    offline: bool = False

    @classmethod
    def from_domain(cls, coupon: Coupon, offline: bool = False) -> "CouponResponse":
        return cls(
            id=coupon.id,
            code=coupon.code,
            discount_percent=coupon.discount_percent,
            usage_limit=coupon.usage_limit,
            used_count=coupon.used_count,
            expires_at=coupon.expires_at,
            is_auto_apply=coupon.is_auto_apply,
            type=coupon.type,
            created_at=coupon.created_at,
            offline=offline,
        )


class CouponListResponse(BaseModel):
    items: list[CouponResponse]
    offline: bool = False
