"""Coupon rules shared by the live store and the offline mirror."""

from datetime import datetime
from decimal import Decimal

from src.smm_common.enums import CouponType
from src.smm_common.errors import (
    CouponExpiredError,
    CouponTypeMismatchError,
    CouponUsageLimitError,
    InvalidCouponError,
)
from src.smm_common.money import percent_of
from src.smm_coupon.domain.models import Coupon

_WRONG_TYPE_MESSAGES = {
    CouponType.DISCOUNT: "This is a deposit bonus coupon and cannot be used on orders.",
    CouponType.BONUS: "This is an order discount coupon and cannot be used on deposits.",
}


def normalize_code(code: str) -> str:
    return code.strip().upper()


def validate_coupon(coupon: Coupon | None, now: datetime) -> Coupon:
    """Check a looked-up coupon. Order of checks: missing, exhausted, expired."""
    if coupon is None:
        raise InvalidCouponError()
    if coupon.is_exhausted:
        raise CouponUsageLimitError()
    if coupon.is_expired(now):
        raise CouponExpiredError()
    return coupon


def require_type(coupon: Coupon, expected: CouponType) -> Coupon:
    if coupon.type != expected:
        raise CouponTypeMismatchError(_WRONG_TYPE_MESSAGES[expected])
    return coupon


def discounted_amount(amount: Decimal, coupon: Coupon | None) -> Decimal:
    if coupon is None:
        return amount
    return amount - percent_of(amount, coupon.discount_percent)


def bonus_amount(amount: Decimal, coupon: Coupon | None) -> Decimal | None:
    """Deposit bonus, or None when there is nothing to add."""
    if coupon is None:
        return None
    bonus = percent_of(amount, coupon.discount_percent)
    return bonus if bonus > 0 else None
