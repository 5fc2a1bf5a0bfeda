"""Coupon domain model — pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.smm_common.datetime_utils import ensure_aware
from src.smm_common.enums import CouponType


@dataclass
class Coupon:
    id: str
    code: str                     # always upper-cased
    discount_percent: Decimal     # discount on orders, bonus on deposits
    usage_limit: int              # 0 = unlimited
    used_count: int
    created_at: datetime
    expires_at: datetime | None = None
    is_auto_apply: bool = False
    type: CouponType = CouponType.DISCOUNT

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit > 0 and self.used_count >= self.usage_limit

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and ensure_aware(self.expires_at) < now
