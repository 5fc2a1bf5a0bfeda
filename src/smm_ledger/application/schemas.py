"""Pydantic schemas for the smm_ledger API.

Money travels as a decimal string ("1100.00") next to a display string
("₹1,100.00"). Every response records whether it was served by the offline
mirror instead of the live store.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.smm_common.enums import DepositStatus, OrderStatus, UserRole, UserStatus
from src.smm_common.money import money_to_display
from src.smm_ledger.domain.models import DepositRequest, Order, Transaction, User

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PlaceOrderRequest(BaseModel):
    service_id: str = Field(..., min_length=1)
    target_url: str = Field(..., min_length=1, description="Link or username to deliver to")
    quantity: int = Field(..., gt=0)
    coupon_code: str | None = None


class CreateDepositRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    utr: str = Field(..., min_length=1, description="UPI transaction reference")
    sender_upi: str = Field(..., min_length=1)
    screenshot_url: str = ""
    coupon_code: str | None = None


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus


class ProcessDepositRequest(BaseModel):
    status: DepositStatus

    @field_validator("status")
    @classmethod
    def decision_only(cls, status: DepositStatus) -> DepositStatus:
        if status == DepositStatus.PENDING:
            raise ValueError("status must be Approved or Rejected")
        return status


class UpdateUserStatusRequest(BaseModel):
    status: UserStatus


class AdjustWalletRequest(BaseModel):
    amount: Decimal = Field(..., decimal_places=2, description="Positive credits, negative debits")
    reason: str = Field(..., min_length=1, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class WalletResponse(BaseModel):
    user_id: str
    display_id: str | None
    name: str
    status: str
    wallet_balance: Decimal
    wallet_balance_display: str
    total_spent: Decimal
    total_spent_display: str
    offline: bool = False

    @classmethod
    def from_user(cls, user: User, offline: bool = False) -> "WalletResponse":
        return cls(
            user_id=user.id,
            display_id=user.display_id,
            name=user.name,
            status=user.status.value,
            wallet_balance=user.wallet_balance,
            wallet_balance_display=money_to_display(user.wallet_balance),
            total_spent=user.total_spent,
            total_spent_display=money_to_display(user.total_spent),
            offline=offline,
        )


class OrderResponse(BaseModel):
    id: str
    display_id: str
    user_id: str
    user_name: str
    service: str
    service_id: str | None = None
    target_url: str
    quantity: int
    unit: str | None = None
    amount: Decimal
    amount_display: str
    status: OrderStatus
    coupon_code: str | None = None
    is_limited_offer: bool
    last_updated_by: str | None = None
    created_at: datetime
    offline: bool = False

    @classmethod
    def from_domain(cls, order: Order, offline: bool = False) -> "OrderResponse":
        return cls(
            id=order.id,
            display_id=order.display_id,
            user_id=order.user_id,
            user_name=order.user_name,
            service=order.service,
            service_id=order.service_id,
            target_url=order.target_url,
            quantity=order.quantity,
            unit=order.unit,
            amount=order.amount,
            amount_display=money_to_display(order.amount),
            status=order.status,
            coupon_code=order.coupon_code,
            is_limited_offer=order.is_limited_offer,
            last_updated_by=order.last_updated_by,
            created_at=order.created_at,
            offline=offline,
        )


class TransactionItem(BaseModel):
    id: str
    type: str
    amount: Decimal
    amount_display: str
    description: str
    status: str
    related_id: str
    created_at: datetime

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            type=tx.type.value,
            amount=tx.amount,
            amount_display=money_to_display(tx.amount),
            description=tx.description,
            status=tx.status,
            related_id=tx.related_id,
            created_at=tx.created_at,
        )


class AdjustWalletResponse(BaseModel):
    applied: bool
    transaction: TransactionItem | None = None
    offline: bool = False


class DepositResponse(BaseModel):
    id: str
    display_id: str
    user_id: str
    user_name: str
    user_display_id: str | None = None
    amount: Decimal
    amount_display: str
    bonus_amount: Decimal | None = None
    total_credit_display: str
    utr: str
    sender_upi: str
    screenshot_url: str
    status: DepositStatus
    coupon_code: str | None = None
    created_at: datetime
    offline: bool = False

    @classmethod
    def from_domain(cls, request: DepositRequest, offline: bool = False) -> "DepositResponse":
        return cls(
            id=request.id,
            display_id=request.display_id,
            user_id=request.user_id,
            user_name=request.user_name,
            user_display_id=request.user_display_id,
            amount=request.amount,
            amount_display=money_to_display(request.amount),
            bonus_amount=request.bonus_amount,
            total_credit_display=money_to_display(request.total_credit),
            utr=request.utr,
            sender_upi=request.sender_upi,
            screenshot_url=request.screenshot_url,
            status=request.status,
            coupon_code=request.coupon_code,
            created_at=request.created_at,
            offline=offline,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    offline: bool = False


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    offline: bool = False


class DepositListResponse(BaseModel):
    items: list[DepositResponse]
    offline: bool = False


class UserResponse(BaseModel):
    """A profile as the admin console lists it."""

    id: str
    display_id: str | None
    name: str
    email: str
    whatsapp: str | None = None
    role: UserRole
    status: UserStatus
    wallet_balance: Decimal
    wallet_balance_display: str
    total_spent: Decimal
    created_at: datetime | None = None
    offline: bool = False

    @classmethod
    def from_domain(cls, user: User, offline: bool = False) -> "UserResponse":
        return cls(
            id=user.id,
            display_id=user.display_id,
            name=user.name,
            email=user.email,
            whatsapp=user.whatsapp,
            role=user.role,
            status=user.status,
            wallet_balance=user.wallet_balance,
            wallet_balance_display=money_to_display(user.wallet_balance),
            total_spent=user.total_spent,
            created_at=user.created_at,
            offline=offline,
        )


class UserListResponse(BaseModel):
    items: list[UserResponse]
    offline: bool = False
