"""CouponRepository — raw-SQL access to the coupons table.

Codes are stored upper-cased; lookups normalise the input the same way.
Consumption is one conditional UPDATE, so two orders racing for the last use
of a coupon cannot both succeed.

Transaction ownership: the CALLER commits.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.smm_common.enums import CouponType
from src.smm_common.errors import CouponExistsError, CouponUsageLimitError, InvalidCouponError
from src.smm_coupon.domain.models import Coupon
from src.smm_coupon.domain.rules import normalize_code

_COLUMNS = """id, code, discount_percent, usage_limit, used_count,
              expires_at, is_auto_apply, type, created_at"""

_FIND_BY_CODE_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM coupons
    WHERE code = :code
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM coupons
    ORDER BY created_at DESC
""")

_INSERT_SQL = text(f"""
    INSERT INTO coupons
        (code, discount_percent, usage_limit, expires_at, is_auto_apply, type)
    VALUES
        (:code, :discount_percent, :usage_limit, :expires_at, :is_auto_apply, :type)
    ON CONFLICT (code) DO NOTHING
    RETURNING {_COLUMNS}
""")

_DELETE_SQL = text("DELETE FROM coupons WHERE id = :id")

_CONSUME_SQL = text(f"""
    UPDATE coupons
    SET used_count = used_count + 1
    WHERE code = :code
      AND (usage_limit = 0 OR used_count < usage_limit)
    RETURNING {_COLUMNS}
""")


def _row_to_coupon(row: object) -> Coupon:
    return Coupon(
        id=str(row.id),  # type: ignore[attr-defined]
        code=row.code,  # type: ignore[attr-defined]
        discount_percent=Decimal(row.discount_percent),  # type: ignore[attr-defined]
        usage_limit=row.usage_limit,  # type: ignore[attr-defined]
        used_count=row.used_count,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        expires_at=row.expires_at,  # type: ignore[attr-defined]
        is_auto_apply=row.is_auto_apply,  # type: ignore[attr-defined]
        type=CouponType(row.type),  # type: ignore[attr-defined]
    )


class CouponRepository:
    async def find_by_code(self, db: AsyncSession, code: str) -> Coupon | None:
        result = await db.execute(_FIND_BY_CODE_SQL, {"code": normalize_code(code)})
        row = result.fetchone()
        return _row_to_coupon(row) if row else None

    async def list_all(self, db: AsyncSession) -> list[Coupon]:
        result = await db.execute(_LIST_SQL)
        return [_row_to_coupon(r) for r in result.fetchall()]

    async def create(
        self,
        db: AsyncSession,
        code: str,
        discount_percent: Decimal,
        usage_limit: int,
        expires_at: datetime | None,
        is_auto_apply: bool,
        coupon_type: CouponType,
    ) -> Coupon:
        code = normalize_code(code)
        result = await db.execute(
            _INSERT_SQL,
            {
                "code": code,
                "discount_percent": discount_percent,
                "usage_limit": usage_limit,
                "expires_at": expires_at,
                "is_auto_apply": is_auto_apply,
                "type": coupon_type.value,
            },
        )
        row = result.fetchone()
        if row is None:
            raise CouponExistsError(code)
        return _row_to_coupon(row)

    async def delete(self, db: AsyncSession, coupon_id: str) -> None:
        await db.execute(_DELETE_SQL, {"id": coupon_id})

    async def consume(self, db: AsyncSession, code: str) -> Coupon:
        """Increment used_count, refusing once the usage limit is reached."""
        result = await db.execute(_CONSUME_SQL, {"code": normalize_code(code)})
        row = result.fetchone()
        if row is not None:
            return _row_to_coupon(row)
        if await self.find_by_code(db, code) is None:
            raise InvalidCouponError()
        raise CouponUsageLimitError()
