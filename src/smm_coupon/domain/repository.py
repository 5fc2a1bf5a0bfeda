"""CouponStore Protocol — coupon administration on either store."""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from src.smm_common.enums import CouponType
from src.smm_coupon.domain.models import Coupon


class CouponStoreProtocol(Protocol):
    async def find_coupon(self, code: str) -> Coupon | None: ...

    async def list_coupons(self) -> list[Coupon]: ...

    async def create_coupon(
        self,
        code: str,
        discount_percent: Decimal,
        usage_limit: int,
        expires_at: datetime | None,
        is_auto_apply: bool,
        coupon_type: CouponType,
    ) -> Coupon: ...

    async def delete_coupon(self, coupon_id: str) -> None: ...
