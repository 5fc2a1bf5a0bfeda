"""CatalogService — categories, service packages, price quotes and the derived cooldown lock.

A package must name an existing category, and a category cannot be removed
while packages still point at it.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from src.smm_catalog.application.schemas import (
    CategoryListResponse,
    CategoryResponse,
    CreateCategoryRequest,
    CreateServiceRequest,
    QuoteResponse,
    ServiceListResponse,
    ServiceResponse,
)
from src.smm_catalog.domain.models import ServicePackage
from src.smm_catalog.domain.rules import cooldown_unlocks_at, quote_amount
from src.smm_common.datetime_utils import utc_now
from src.smm_common.enums import CouponType
from src.smm_common.errors import CategoryInUseError, CategoryNotFoundError, ServiceNotFoundError
from src.smm_common.money import money_to_display, to_money
from src.smm_coupon.domain.rules import discounted_amount, require_type, validate_coupon
from src.smm_ledger.application.fallback import FallbackPolicy, run_with_fallback
from src.smm_ledger.domain.repository import LedgerStoreProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CatalogService:
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

    async def _run(
        self, operation: str, call: Callable[[LedgerStoreProtocol], Awaitable[T]]
    ) -> tuple[T, bool]:
        return await run_with_fallback(operation, call, self._store, self._mirror, self._policy)

    @staticmethod
    async def _require_category(store: LedgerStoreProtocol, category_id: str) -> None:
        if not any(c.id == category_id for c in await store.list_categories()):
            raise CategoryNotFoundError(category_id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> CategoryListResponse:
        categories, offline = await self._run("list_categories", lambda s: s.list_categories())
        return CategoryListResponse(
            items=[CategoryResponse.from_domain(c, offline) for c in categories],
            offline=offline,
        )

    async def create_category(self, body: CreateCategoryRequest) -> CategoryResponse:
        category, offline = await self._run(
            "create_category", lambda s: s.create_category(body.name.strip(), body.icon_name)
        )
        logger.info("Category %s created: %s", category.id, category.name)
        return CategoryResponse.from_domain(category, offline)

    async def delete_category(self, category_id: str) -> None:
        async def call(store: LedgerStoreProtocol) -> None:
            in_use = sum(1 for s in await store.list_services() if s.category_id == category_id)
            if in_use:
                raise CategoryInUseError(category_id, in_use)
            await store.delete_category(category_id)

        _, offline = await self._run("delete_category", call)
        logger.info("Category %s deleted offline=%s", category_id, offline)

    # ------------------------------------------------------------------
    # Service packages
    # ------------------------------------------------------------------

    async def list_services(self, user_id: str | None = None) -> ServiceListResponse:
        """All packages; with a user, limited offers carry that user's unlock time."""

        async def call(store: LedgerStoreProtocol) -> list[ServiceResponse]:
            services = await store.list_services()
            user_orders = await store.list_orders(user_id=user_id) if user_id else []
            now = self._clock()
            return [
                ServiceResponse.from_domain(s, cooldown_unlocks_at(s, user_orders, now))
                for s in services
            ]

        items, offline = await self._run("list_services", call)
        for item in items:
            item.offline = offline
        return ServiceListResponse(items=items, offline=offline)

    async def create_service(self, body: CreateServiceRequest) -> ServiceResponse:
        async def call(store: LedgerStoreProtocol) -> ServicePackage:
            await self._require_category(store, body.category_id)
            return await store.create_service(body.to_draft())

        service, offline = await self._run("create_service", call)
        logger.info("Service %s created: %s", service.id, service.title)
        return ServiceResponse.from_domain(service, offline=offline)

    async def update_service(self, service_id: str, body: CreateServiceRequest) -> ServiceResponse:
        """Full replacement of the editable fields, limited-offer caps included."""

        async def call(store: LedgerStoreProtocol) -> ServicePackage:
            await self._require_category(store, body.category_id)
            return await store.update_service(service_id, body.to_draft())

        service, offline = await self._run("update_service", call)
        logger.info(
            "Service %s updated: %s limited=%s offline=%s",
            service.id, service.title, service.is_limited_offer, offline,
        )
        return ServiceResponse.from_domain(service, offline=offline)

    async def delete_service(self, service_id: str) -> None:
        _, offline = await self._run("delete_service", lambda s: s.delete_service(service_id))
        logger.info("Service %s deleted offline=%s", service_id, offline)

    async def quote(
        self, service_id: str, quantity: int, coupon_code: str | None = None
    ) -> QuoteResponse:
        async def call(store: LedgerStoreProtocol) -> QuoteResponse:
            service = await store.get_service(service_id)
            if service is None:
                raise ServiceNotFoundError(service_id)
            base = quote_amount(service, quantity)
            amount, code = base, None
            if coupon_code:
                coupon = validate_coupon(await store.find_coupon(coupon_code), self._clock())
                require_type(coupon, CouponType.DISCOUNT)
                amount, code = to_money(discounted_amount(base, coupon)), coupon.code
            return QuoteResponse(
                service_id=service.id,
                quantity=quantity,
                base_amount=base,
                amount=amount,
                amount_display=money_to_display(amount),
                coupon_code=code,
            )

        quote, offline = await self._run("quote", call)
        quote.offline = offline
        return quote
