"""smm_catalog REST API — categories, service packages and price quotes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.smm_catalog.application.service import CatalogService
from src.smm_common.response import ApiResponse, served_response
from src.smm_gateway.auth.dependencies import get_current_identity
from src.smm_gateway.auth.jwt_handler import Identity
from src.smm_ledger.api.dependencies import get_ledger_store, get_offline_store
from src.smm_ledger.infrastructure.persistence import SqlLedgerStore
from src.smm_offline.mirror import OfflineLedgerStore

router = APIRouter(prefix="/catalog", tags=["catalog"])


def get_catalog_service(
    store: Annotated[SqlLedgerStore, Depends(get_ledger_store)],
    mirror: Annotated[OfflineLedgerStore | None, Depends(get_offline_store)],
) -> CatalogService:
    return CatalogService(store, mirror)


@router.get("/services")
async def list_services(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    request: Request,
) -> ApiResponse:
    """All packages; limited offers include the caller's cooldown unlock time."""
    resp = served_response(await service.list_services(user_id=identity.user_id))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/services/{service_id}/quote")
async def quote(
    service_id: str,
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    request: Request,
    quantity: int = Query(..., gt=0),
    coupon_code: str | None = Query(None),
) -> ApiResponse:
    resp = served_response(await service.quote(service_id, quantity, coupon_code))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/categories")
async def list_categories(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ApiResponse:
    return served_response(await service.list_categories())
