"""Pricing and limited-offer rules.

The cooldown lock is derived on every call from the user's order history and
never stored anywhere.
"""

from datetime import datetime
from decimal import Decimal

from src.smm_catalog.domain.models import ServicePackage
from src.smm_common.datetime_utils import ensure_aware, minutes_after, start_of_day
from src.smm_common.errors import (
    CooldownActiveError,
    OfferExpiredError,
    OfferSoldOutError,
    QuantityOutOfRangeError,
)
from src.smm_common.money import to_money
from src.smm_ledger.domain.models import Order


def quote_amount(service: ServicePackage, quantity: int) -> Decimal:
    """Undiscounted price: quantity / rate_per_quantity * rate."""
    if not (service.min_quantity <= quantity <= service.max_quantity):
        raise QuantityOutOfRangeError(quantity, service.min_quantity, service.max_quantity)
    if service.rate_per_quantity <= 0:
        return to_money(0)
    return to_money(Decimal(quantity) / Decimal(service.rate_per_quantity) * service.rate)


def _live_orders(orders: list[Order], service_id: str) -> list[Order]:
    return [o for o in orders if o.service_id == service_id and not o.is_cancelled]


def cooldown_unlocks_at(
    service: ServicePackage, user_orders: list[Order], now: datetime
) -> datetime | None:
    """When the service unlocks for this user, or None if it is not locked."""
    if not service.is_limited_offer or service.cooldown_minutes <= 0:
        return None
    live = _live_orders(user_orders, service.id)
    if not live:
        return None
    last = max(ensure_aware(o.created_at) for o in live)
    unlocks_at = minutes_after(last, service.cooldown_minutes)
    return unlocks_at if now < unlocks_at else None


def check_limited_offer(
    service: ServicePackage,
    user_orders: list[Order],
    service_orders_today: int,
    now: datetime,
) -> None:
    """Raise if a new order against `service` is not allowed right now.

    user_orders: all of this user's orders (any service).
    service_orders_today: non-cancelled orders for the service since midnight UTC.
    """
    if not service.is_limited_offer:
        return
    if service.expiry_date is not None and ensure_aware(service.expiry_date) < now:
        raise OfferExpiredError(service.id)
    if service.total_limit > 0 and service.current_orders_count >= service.total_limit:
        raise OfferSoldOutError(f"total limit of {service.total_limit} reached")
    if service.daily_limit > 0 and service_orders_today >= service.daily_limit:
        raise OfferSoldOutError(f"daily limit of {service.daily_limit} reached")
    if service.user_daily_limit > 0:
        midnight = start_of_day(now)
        mine_today = [
            o for o in _live_orders(user_orders, service.id)
            if ensure_aware(o.created_at) >= midnight
        ]
        if len(mine_today) >= service.user_daily_limit:
            raise OfferSoldOutError(
                f"you can place {service.user_daily_limit} order(s) per day"
            )
    unlocks_at = cooldown_unlocks_at(service, user_orders, now)
    if unlocks_at is not None:
        raise CooldownActiveError(unlocks_at.isoformat())
