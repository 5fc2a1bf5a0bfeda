"""CouponService — validation for shoppers, administration for the admin console."""

import logging
from collections.abc import Callable
from datetime import datetime

from src.smm_common.datetime_utils import utc_now
from src.smm_common.enums import CouponType
from src.smm_coupon.application.schemas import (
    CouponListResponse,
    CouponResponse,
    CreateCouponRequest,
)
from src.smm_coupon.domain.models import Coupon
from src.smm_coupon.domain.rules import normalize_code, require_type, validate_coupon
from src.smm_ledger.application.fallback import FallbackPolicy, run_with_fallback
from src.smm_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)


class CouponService:
    def __init__(
        self,
        store: LedgerStoreProtocol,
        mirror: LedgerStoreProtocol | None = None,
        policy: FallbackPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._mirror = mirror
        self._policy = policy or FallbackPolicy.from_settings()
        self._clock = clock

    async def validate(self, code: str, coupon_type: CouponType | None = None) -> CouponResponse:
        """Case-insensitive lookup; raises for missing, exhausted, expired or wrong-type coupons."""

        async def call(store: LedgerStoreProtocol) -> Coupon:
            coupon = validate_coupon(await store.find_coupon(normalize_code(code)), self._clock())
            if coupon_type is not None:
                require_type(coupon, coupon_type)
            return coupon

        coupon, offline = await run_with_fallback(
            "validate_coupon", call, self._store, self._mirror, self._policy
        )
        return CouponResponse.from_domain(coupon, offline)

    async def list_coupons(self) -> CouponListResponse:
        coupons, offline = await run_with_fallback(
            "list_coupons", lambda s: s.list_coupons(), self._store, self._mirror, self._policy
        )
        return CouponListResponse(
            items=[CouponResponse.from_domain(c, offline) for c in coupons], offline=offline
        )

    async def create_coupon(self, body: CreateCouponRequest) -> CouponResponse:
        coupon, offline = await run_with_fallback(
            "create_coupon",
            lambda s: s.create_coupon(
                body.code,
                body.discount_percent,
                body.usage_limit,
                body.expires_at,
                body.is_auto_apply,
                body.type,
            ),
            self._store,
            self._mirror,
            self._policy,
        )
        logger.info("Coupon %s created (%s%% %s)", coupon.code, coupon.discount_percent, coupon.type.value)
        return CouponResponse.from_domain(coupon, offline)

    async def delete_coupon(self, coupon_id: str) -> None:
        await run_with_fallback(
            "delete_coupon", lambda s: s.delete_coupon(coupon_id),
            self._store, self._mirror, self._policy,
        )
        logger.info("Coupon %s deleted", coupon_id)
