"""SqlSequenceAllocator — counters table, one row per counter name.

The whole read-modify-write is a single upsert statement. PostgreSQL holds the
row lock until the surrounding transaction ends, so concurrent callers are
serialised and each observes the previous caller's committed value.

Transaction ownership: the CALLER commits. When called from a ledger operation
the counter bump lands in the same transaction as the rest of its effects.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.smm_common.enums import CounterName
from src.smm_common.errors import InternalError

_NEXT_VALUE_SQL = text("""
    INSERT INTO counters (name, current_value)
    VALUES (:name, 1)
    ON CONFLICT (name) DO UPDATE
        SET current_value = counters.current_value + 1,
            updated_at = NOW()
    RETURNING current_value
""")


class SqlSequenceAllocator:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def next_value(self, counter: CounterName) -> int:
        result = await self._db.execute(_NEXT_VALUE_SQL, {"name": counter.value})
        row = result.fetchone()
        if row is None:
            raise InternalError(f"Counter upsert returned no rows for {counter.value}")
        return int(row.current_value)
