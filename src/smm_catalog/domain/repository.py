"""CatalogStore Protocol — service packages and categories on either store."""

from typing import Protocol

from src.smm_catalog.domain.models import Category, ServiceDraft, ServicePackage


class CatalogStoreProtocol(Protocol):
    async def get_service(self, service_id: str) -> ServicePackage | None: ...

    async def list_services(self) -> list[ServicePackage]: ...

    async def create_service(self, draft: ServiceDraft) -> ServicePackage:
        """Mint a 6-digit id from the `services` counter and persist."""
        ...

    async def update_service(self, service_id: str, draft: ServiceDraft) -> ServicePackage:
        """Replace every editable field; current_orders_count is kept."""
        ...

    async def delete_service(self, service_id: str) -> None: ...

    async def list_categories(self) -> list[Category]: ...

    async def create_category(self, name: str, icon_name: str) -> Category: ...

    async def delete_category(self, category_id: str) -> None: ...
