"""ServiceRepository and CategoryRepository — raw-SQL access to the catalog tables.

Service ids are 6-digit display ids minted from the `services` counter in the
same transaction as the insert.

Transaction ownership: the CALLER commits.
"""

import dataclasses
from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.smm_catalog.domain.models import Category, ServiceDraft, ServicePackage
from src.smm_common.display_id import format_display_id
from src.smm_common.enums import CounterName
from src.smm_common.errors import CategoryNotFoundError, InternalError, ServiceNotFoundError
from src.smm_sequence.infrastructure.persistence import SqlSequenceAllocator

_COLUMNS = """id, title, description, rate, rate_per_quantity, min_quantity,
              max_quantity, category_id, service_type, unit_name, input_type,
              icon_name, min_completion_time, max_completion_time,
              is_limited_offer, expiry_date, total_limit, daily_limit,
              user_daily_limit, cooldown_minutes, current_orders_count"""

_GET_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM services
    WHERE id = :id
""")

_LIST_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM services
    ORDER BY id
""")

_INSERT_SQL = text(f"""
    INSERT INTO services
        (id, title, description, rate, rate_per_quantity, min_quantity,
         max_quantity, category_id, service_type, unit_name, input_type,
         icon_name, min_completion_time, max_completion_time,
         is_limited_offer, expiry_date, total_limit, daily_limit,
         user_daily_limit, cooldown_minutes)
    VALUES
        (:id, :title, :description, :rate, :rate_per_quantity, :min_quantity,
         :max_quantity, :category_id, :service_type, :unit_name, :input_type,
         :icon_name, :min_completion_time, :max_completion_time,
         :is_limited_offer, :expiry_date, :total_limit, :daily_limit,
         :user_daily_limit, :cooldown_minutes)
    RETURNING {_COLUMNS}
""")

_UPDATE_SQL = text(f"""
    UPDATE services
    SET title = :title,
        description = :description,
        rate = :rate,
        rate_per_quantity = :rate_per_quantity,
        min_quantity = :min_quantity,
        max_quantity = :max_quantity,
        category_id = :category_id,
        service_type = :service_type,
        unit_name = :unit_name,
        input_type = :input_type,
        icon_name = :icon_name,
        min_completion_time = :min_completion_time,
        max_completion_time = :max_completion_time,
        is_limited_offer = :is_limited_offer,
        expiry_date = :expiry_date,
        total_limit = :total_limit,
        daily_limit = :daily_limit,
        user_daily_limit = :user_daily_limit,
        cooldown_minutes = :cooldown_minutes,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_COLUMNS}
""")

_DELETE_SQL = text("DELETE FROM services WHERE id = :id RETURNING id")

_INCREMENT_ORDERS_SQL = text("""
    UPDATE services
    SET current_orders_count = current_orders_count + 1,
        updated_at = NOW()
    WHERE id = :id
    RETURNING current_orders_count
""")


def _row_to_service(row: object) -> ServicePackage:
    return ServicePackage(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        rate=Decimal(row.rate),  # type: ignore[attr-defined]
        rate_per_quantity=row.rate_per_quantity,  # type: ignore[attr-defined]
        min_quantity=row.min_quantity,  # type: ignore[attr-defined]
        max_quantity=row.max_quantity,  # type: ignore[attr-defined]
        category_id=row.category_id,  # type: ignore[attr-defined]
        service_type=row.service_type,  # type: ignore[attr-defined]
        unit_name=row.unit_name,  # type: ignore[attr-defined]
        input_type=row.input_type,  # type: ignore[attr-defined]
        icon_name=row.icon_name,  # type: ignore[attr-defined]
        min_completion_time=row.min_completion_time,  # type: ignore[attr-defined]
        max_completion_time=row.max_completion_time,  # type: ignore[attr-defined]
        is_limited_offer=row.is_limited_offer,  # type: ignore[attr-defined]
        expiry_date=row.expiry_date,  # type: ignore[attr-defined]
        total_limit=row.total_limit,  # type: ignore[attr-defined]
        daily_limit=row.daily_limit,  # type: ignore[attr-defined]
        user_daily_limit=row.user_daily_limit,  # type: ignore[attr-defined]
        cooldown_minutes=row.cooldown_minutes,  # type: ignore[attr-defined]
        current_orders_count=row.current_orders_count,  # type: ignore[attr-defined]
    )


def _draft_params(draft: ServiceDraft) -> dict[str, Any]:
    return dataclasses.asdict(draft)


class ServiceRepository:
    async def get(self, db: AsyncSession, service_id: str) -> ServicePackage | None:
        result = await db.execute(_GET_SQL, {"id": service_id})
        row = result.fetchone()
        return _row_to_service(row) if row else None

    async def list_all(self, db: AsyncSession) -> list[ServicePackage]:
        result = await db.execute(_LIST_SQL)
        return [_row_to_service(r) for r in result.fetchall()]

    async def create(self, db: AsyncSession, draft: ServiceDraft) -> ServicePackage:
        value = await SqlSequenceAllocator(db).next_value(CounterName.SERVICES)
        params = _draft_params(draft)
        params["id"] = format_display_id(CounterName.SERVICES, value)
        result = await db.execute(_INSERT_SQL, params)
        row = result.fetchone()
        if row is None:
            raise InternalError("Service insert returned no rows")
        return _row_to_service(row)

    async def update(
        self, db: AsyncSession, service_id: str, draft: ServiceDraft
    ) -> ServicePackage:
        params = _draft_params(draft)
        params["id"] = service_id
        result = await db.execute(_UPDATE_SQL, params)
        row = result.fetchone()
        if row is None:
            raise ServiceNotFoundError(service_id)
        return _row_to_service(row)

    async def delete(self, db: AsyncSession, service_id: str) -> None:
        result = await db.execute(_DELETE_SQL, {"id": service_id})
        if result.fetchone() is None:
            raise ServiceNotFoundError(service_id)

    async def increment_orders_count(self, db: AsyncSession, service_id: str) -> int:
        result = await db.execute(_INCREMENT_ORDERS_SQL, {"id": service_id})
        row = result.fetchone()
        if row is None:
            raise ServiceNotFoundError(service_id)
        return int(row.current_orders_count)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

_CATEGORY_COLUMNS = "id, name, icon_name"

_LIST_CATEGORIES_SQL = text(f"""
    SELECT {_CATEGORY_COLUMNS}
    FROM categories
    ORDER BY created_at, id
""")

_INSERT_CATEGORY_SQL = text(f"""
    INSERT INTO categories (name, icon_name)
    VALUES (:name, :icon_name)
    RETURNING {_CATEGORY_COLUMNS}
""")

_DELETE_CATEGORY_SQL = text("DELETE FROM categories WHERE id = :id RETURNING id")


def _row_to_category(row: object) -> Category:
    return Category(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        icon_name=row.icon_name,  # type: ignore[attr-defined]
    )


class CategoryRepository:
    async def list_all(self, db: AsyncSession) -> list[Category]:
        result = await db.execute(_LIST_CATEGORIES_SQL)
        return [_row_to_category(r) for r in result.fetchall()]

    async def create(self, db: AsyncSession, name: str, icon_name: str) -> Category:
        result = await db.execute(_INSERT_CATEGORY_SQL, {"name": name, "icon_name": icon_name})
        row = result.fetchone()
        if row is None:
            raise InternalError("Category insert returned no rows")
        return _row_to_category(row)

    async def delete(self, db: AsyncSession, category_id: str) -> None:
        result = await db.execute(_DELETE_CATEGORY_SQL, {"id": category_id})
        if result.fetchone() is None:
            raise CategoryNotFoundError(category_id)
