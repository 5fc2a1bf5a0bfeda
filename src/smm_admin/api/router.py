"""Admin REST API — orders, deposits, users and wallets, coupons, the catalog, stats."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.smm_admin.application.service import AdminService
from src.smm_catalog.api.router import get_catalog_service
from src.smm_catalog.application.schemas import CreateCategoryRequest, CreateServiceRequest
from src.smm_catalog.application.service import CatalogService
from src.smm_common.response import ApiResponse, served_response, success_response
from src.smm_coupon.api.router import get_coupon_service
from src.smm_coupon.application.schemas import CreateCouponRequest
from src.smm_coupon.application.service import CouponService
from src.smm_gateway.auth.dependencies import require_admin
from src.smm_gateway.auth.jwt_handler import Identity
from src.smm_ledger.api.dependencies import get_ledger_service, get_ledger_store, get_offline_store
from src.smm_ledger.application.schemas import (
    AdjustWalletRequest,
    ProcessDepositRequest,
    UpdateOrderStatusRequest,
    UpdateUserStatusRequest,
)
from src.smm_ledger.application.service import LedgerService
from src.smm_ledger.infrastructure.persistence import SqlLedgerStore
from src.smm_offline.mirror import OfflineLedgerStore

router = APIRouter(prefix="/admin", tags=["admin"])

Admin = Annotated[Identity, Depends(require_admin)]
Ledger = Annotated[LedgerService, Depends(get_ledger_service)]
Catalog = Annotated[CatalogService, Depends(get_catalog_service)]


def get_admin_service(
    store: Annotated[SqlLedgerStore, Depends(get_ledger_store)],
    mirror: Annotated[OfflineLedgerStore | None, Depends(get_offline_store)],
) -> AdminService:
    return AdminService(store, mirror)


@router.get("/stats")
async def dashboard_stats(
    admin: Admin,
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    return served_response(await service.dashboard_stats())


# --- orders ---

@router.get("/orders")
async def list_orders(admin: Admin, service: Ledger) -> ApiResponse:
    return served_response(await service.list_orders())


@router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, admin: Admin, service: Ledger
) -> ApiResponse:
    return served_response(
        await service.update_order_status(order_id, body.status, admin.audit_label)
    )


@router.post("/orders/{order_id}/cancel")
async def cancel_order(order_id: str, admin: Admin, service: Ledger) -> ApiResponse:
    return served_response(await service.cancel_order(order_id, admin.audit_label))


# --- deposits ---

@router.get("/deposits")
async def list_deposit_requests(admin: Admin, service: Ledger) -> ApiResponse:
    return served_response(await service.list_deposit_requests())


@router.patch("/deposits/{request_id}")
async def process_deposit(
    request_id: str, body: ProcessDepositRequest, admin: Admin, service: Ledger
) -> ApiResponse:
    return served_response(await service.process_deposit(request_id, body.status))


# --- users and wallets ---

@router.get("/users")
async def list_users(admin: Admin, service: Ledger) -> ApiResponse:
    return served_response(await service.list_users())


@router.patch("/users/{user_id}/status")
async def set_user_status(
    user_id: str, body: UpdateUserStatusRequest, admin: Admin, service: Ledger
) -> ApiResponse:
    return served_response(await service.set_user_status(user_id, body.status))


@router.post("/users/{user_id}/wallet-adjustments")
async def adjust_wallet(
    user_id: str, body: AdjustWalletRequest, admin: Admin, service: Ledger
) -> ApiResponse:
    return served_response(await service.adjust_wallet(user_id, body.amount, body.reason))


# --- coupons ---

@router.get("/coupons")
async def list_coupons(
    admin: Admin, service: Annotated[CouponService, Depends(get_coupon_service)]
) -> ApiResponse:
    return served_response(await service.list_coupons())


@router.post("/coupons")
async def create_coupon(
    body: CreateCouponRequest,
    admin: Admin,
    service: Annotated[CouponService, Depends(get_coupon_service)],
) -> ApiResponse:
    return served_response(await service.create_coupon(body))


@router.delete("/coupons/{coupon_id}")
async def delete_coupon(
    coupon_id: str,
    admin: Admin,
    service: Annotated[CouponService, Depends(get_coupon_service)],
) -> ApiResponse:
    await service.delete_coupon(coupon_id)
    return success_response({"deleted": coupon_id})


# --- catalog ---

@router.post("/categories")
async def create_category(body: CreateCategoryRequest, admin: Admin, service: Catalog) -> ApiResponse:
    return served_response(await service.create_category(body))


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, admin: Admin, service: Catalog) -> ApiResponse:
    await service.delete_category(category_id)
    return success_response({"deleted": category_id})


@router.post("/services")
async def create_service(body: CreateServiceRequest, admin: Admin, service: Catalog) -> ApiResponse:
    return served_response(await service.create_service(body))


@router.put("/services/{service_id}")
async def update_service(
    service_id: str, body: CreateServiceRequest, admin: Admin, service: Catalog
) -> ApiResponse:
    return served_response(await service.update_service(service_id, body))


@router.delete("/services/{service_id}")
async def delete_service(service_id: str, admin: Admin, service: Catalog) -> ApiResponse:
    await service.delete_service(service_id)
    return success_response({"deleted": service_id})
