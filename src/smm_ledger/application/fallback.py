"""When a failed live-store call may be retried against the offline mirror.

The ledger stores never retry on their own; this policy is the one place that
decides. A failure raised before COMMIT was sent is safe to replay: the SQL
store rolls back, so the live store applied nothing. A connection lost during
COMMIT is not: the server may already have committed, and replaying on the
mirror would apply the operation in both stores. Such errors carry
`outcome_unknown` and always propagate, leaving the caller to check the live
store before retrying.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from config.settings import settings
from src.smm_common.enums import StoreErrorKind
from src.smm_common.errors import StoreError
from src.smm_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FallbackPolicy:
    enabled: bool = True
    on_permission_denied: bool = False

    @classmethod
    def from_settings(cls) -> "FallbackPolicy":
        return cls(
            enabled=settings.OFFLINE_MIRROR_ENABLED,
            on_permission_denied=settings.OFFLINE_FALLBACK_ON_PERMISSION_DENIED,
        )

    def allows(self, error: StoreError) -> bool:
        if not self.enabled or error.outcome_unknown:
            return False
        if error.kind is StoreErrorKind.NETWORK_UNAVAILABLE:
            return True
        if error.kind is StoreErrorKind.PERMISSION_DENIED:
            return self.on_permission_denied
        return False


async def run_with_fallback(
    operation: str,
    call: Callable[[LedgerStoreProtocol], Awaitable[T]],
    primary: LedgerStoreProtocol,
    mirror: LedgerStoreProtocol | None,
    policy: FallbackPolicy,
) -> tuple[T, bool]:
    """Run `call` on the primary store, or on the mirror if policy allows.

    Returns (result, served_offline). Errors the policy does not cover, and
    every domain error, propagate unchanged.
    """
    try:
        return await call(primary), False
    except StoreError as exc:
        if exc.outcome_unknown:
            logger.error(
                "Live store lost the connection while committing %s; outcome unknown, not replayed",
                operation,
            )
        if mirror is None or not policy.allows(exc):
            raise
        logger.warning(
            "Live store failed during %s (%s); serving from offline mirror",
            operation, exc.kind.value,
        )
        return await call(mirror), True
