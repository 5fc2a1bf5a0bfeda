"""Dashboard statistics, computed from the order list."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from src.smm_common.datetime_utils import ensure_aware, start_of_day, start_of_month
from src.smm_common.enums import OrderStatus
from src.smm_common.money import ZERO, to_money
from src.smm_ledger.domain.models import Order


class DashboardStats(BaseModel):
    total_revenue: Decimal = ZERO
    total_orders: int = 0
    monthly_revenue: Decimal = ZERO
    todays_revenue: Decimal = ZERO
    todays_orders: int = 0
    pending_orders: int = 0          # Pending or In Progress
    completed_orders: int = 0
    limited_orders: int = 0
    limited_pending: int = 0
    limited_completed: int = 0
    limited_rejected: int = 0        # cancelled limited-offer orders
    limited_revenue: Decimal = ZERO
    limited_monthly_revenue: Decimal = ZERO
    offline: bool = False


def compute_dashboard_stats(orders: list[Order], now: datetime) -> DashboardStats:
    """Revenue counts Completed orders only; day and month boundaries are UTC."""
    day_start = start_of_day(now)
    month_start = start_of_month(now)
    stats = DashboardStats(total_orders=len(orders))

    for order in orders:
        placed = ensure_aware(order.created_at)
        completed = order.status == OrderStatus.COMPLETED

        if completed:
            stats.total_revenue += order.amount
            stats.completed_orders += 1
            if placed >= month_start:
                stats.monthly_revenue += order.amount
            if placed >= day_start:
                stats.todays_revenue += order.amount
        if placed >= day_start:
            stats.todays_orders += 1
        if order.status in (OrderStatus.PENDING, OrderStatus.IN_PROGRESS):
            stats.pending_orders += 1

        if order.is_limited_offer:
            stats.limited_orders += 1
            if order.status == OrderStatus.PENDING:
                stats.limited_pending += 1
            elif completed:
                stats.limited_completed += 1
                stats.limited_revenue += order.amount
                if placed >= month_start:
                    stats.limited_monthly_revenue += order.amount
            elif order.status == OrderStatus.CANCELLED:
                stats.limited_rejected += 1

    for field in ("total_revenue", "monthly_revenue", "todays_revenue",
                  "limited_revenue", "limited_monthly_revenue"):
        setattr(stats, field, to_money(getattr(stats, field)))
    return stats
