"""smm_coupon REST API — coupon validation for shoppers."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.smm_common.response import ApiResponse, served_response
from src.smm_coupon.application.schemas import ValidateCouponRequest
from src.smm_coupon.application.service import CouponService
from src.smm_gateway.auth.dependencies import get_current_identity
from src.smm_gateway.auth.jwt_handler import Identity
from src.smm_ledger.api.dependencies import get_ledger_store, get_offline_store
from src.smm_ledger.infrastructure.persistence import SqlLedgerStore
from src.smm_offline.mirror import OfflineLedgerStore

router = APIRouter(prefix="/coupons", tags=["coupons"])


def get_coupon_service(
    store: Annotated[SqlLedgerStore, Depends(get_ledger_store)],
    mirror: Annotated[OfflineLedgerStore | None, Depends(get_offline_store)],
) -> CouponService:
    return CouponService(store, mirror)


@router.post("/validate")
async def validate_coupon(
    body: ValidateCouponRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[CouponService, Depends(get_coupon_service)],
    request: Request,
) -> ApiResponse:
    resp = served_response(await service.validate(body.code, body.type))
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
