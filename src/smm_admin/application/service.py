"""Admin application service."""

from collections.abc import Callable
from datetime import datetime

from src.smm_admin.application.stats import DashboardStats, compute_dashboard_stats
from src.smm_common.datetime_utils import utc_now
from src.smm_ledger.application.fallback import FallbackPolicy, run_with_fallback
from src.smm_ledger.domain.repository import LedgerStoreProtocol


class AdminService:
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

    async def dashboard_stats(self) -> DashboardStats:
        orders, offline = await run_with_fallback(
            "dashboard_stats", lambda s: s.list_orders(), self._store, self._mirror, self._policy
        )
        stats = compute_dashboard_stats(orders, self._clock())
        stats.offline = offline
        return stats
