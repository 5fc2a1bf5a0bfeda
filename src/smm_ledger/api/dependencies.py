"""FastAPI dependencies wiring the ledger stores into the application services.

The live store is bound to the request's AsyncSession. The offline mirror is
a process-wide singleton: its lock is what keeps it single-writer.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.smm_common.database import get_db_session
from src.smm_common.redis_client import get_redis
from src.smm_ledger.application.service import LedgerService
from src.smm_ledger.infrastructure.persistence import SqlLedgerStore
from src.smm_offline.mirror import OfflineLedgerStore
from src.smm_offline.storage import RedisKeyValueStorage

_offline_store: OfflineLedgerStore | None = None


async def get_offline_store() -> OfflineLedgerStore | None:
    global _offline_store  # noqa: PLW0603
    if not settings.OFFLINE_MIRROR_ENABLED:
        return None
    if _offline_store is None:
        storage = RedisKeyValueStorage(await get_redis(), settings.OFFLINE_KEY_PREFIX)
        _offline_store = OfflineLedgerStore(
            storage, legacy_deposit_ids=settings.OFFLINE_LEGACY_DEPOSIT_IDS
        )
    return _offline_store


def get_ledger_store(
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SqlLedgerStore:
    return SqlLedgerStore(db)


def get_ledger_service(
    store: Annotated[SqlLedgerStore, Depends(get_ledger_store)],
    mirror: Annotated[OfflineLedgerStore | None, Depends(get_offline_store)],
) -> LedgerService:
    return LedgerService(store, mirror)
