"""smm_ledger REST API — wallet, orders and deposits for the signed-in user."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.smm_common.response import ApiResponse, served_response
from src.smm_gateway.auth.dependencies import get_current_identity
from src.smm_gateway.auth.jwt_handler import Identity
from src.smm_ledger.api.dependencies import get_ledger_service
from src.smm_ledger.application.schemas import CreateDepositRequest, PlaceOrderRequest
from src.smm_ledger.application.service import LedgerService
from src.smm_ledger.domain.models import UserDraft

router = APIRouter(tags=["ledger"])


def _respond(request: Request, data: BaseModel) -> ApiResponse:
    resp = served_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/wallet/me")
async def get_my_wallet(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    request: Request,
) -> ApiResponse:
    """Return the caller's wallet, provisioning the profile on first sign-in."""
    draft = UserDraft(id=identity.user_id, name=identity.name, email=identity.email)
    return _respond(request, await service.get_or_create_user(draft))


@router.get("/wallet/transactions")
async def list_my_transactions(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    request: Request,
) -> ApiResponse:
    return _respond(request, await service.list_transactions(identity.user_id))


@router.post("/orders")
async def place_order(
    body: PlaceOrderRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    request: Request,
) -> ApiResponse:
    return _respond(request, await service.order_service(identity.user_id, body))


@router.get("/orders")
async def list_my_orders(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    request: Request,
) -> ApiResponse:
    return _respond(request, await service.list_orders(user_id=identity.user_id))


@router.post("/deposits")
async def create_deposit_request(
    body: CreateDepositRequest,
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    request: Request,
) -> ApiResponse:
    return _respond(request, await service.create_deposit_request(identity.user_id, body))


@router.get("/deposits")
async def list_my_deposit_requests(
    identity: Annotated[Identity, Depends(get_current_identity)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
    request: Request,
) -> ApiResponse:
    return _respond(request, await service.list_deposit_requests(user_id=identity.user_id))
