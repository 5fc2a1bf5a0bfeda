"""Domain models for smm_ledger — pure dataclasses, no SQLAlchemy dependency.

Optional fields default to None and are omitted at every serialisation
boundary instead of being written out as nulls.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.smm_common.enums import (
    DepositStatus,
    OrderStatus,
    TransactionType,
    UserRole,
    UserStatus,
)
from src.smm_common.money import ZERO, to_money


@dataclass
class User:
    id: str
    display_id: str | None
    name: str
    email: str
    role: UserRole = UserRole.USER
    wallet_balance: Decimal = ZERO
    total_spent: Decimal = ZERO
    status: UserStatus = UserStatus.ACTIVE
    whatsapp: str | None = None
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass
class UserDraft:
    id: str                      # identity-provider uid
    name: str
    email: str
    whatsapp: str | None = None
    role: UserRole = UserRole.USER


@dataclass
class Order:
    id: str
    display_id: str              # "00042" or "L00042"
    user_id: str
    user_name: str
    service: str                 # service title at time of purchase
    target_url: str
    quantity: int
    amount: Decimal
    status: OrderStatus
    created_at: datetime
    service_id: str | None = None
    unit: str | None = None
    user_whatsapp: str | None = None
    coupon_code: str | None = None
    is_limited_offer: bool = False
    last_updated_by: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED


@dataclass
class OrderDraft:
    """Everything PlaceOrder needs; id, display id, status and date are minted."""

    user_id: str
    user_name: str
    service: str
    target_url: str
    quantity: int
    amount: Decimal
    service_id: str | None = None
    unit: str | None = None
    user_whatsapp: str | None = None
    coupon_code: str | None = None
    is_limited_offer: bool = False


@dataclass
class Transaction:
    id: str
    user_id: str
    type: TransactionType
    amount: Decimal              # magnitude, always >= 0
    description: str
    status: str                  # DepositStatus or OrderStatus value
    related_id: str
    created_at: datetime


@dataclass
class DepositRequest:
    id: str
    display_id: str              # 7 digits
    user_id: str
    user_name: str
    amount: Decimal
    utr: str
    sender_upi: str
    screenshot_url: str
    status: DepositStatus
    created_at: datetime
    user_display_id: str | None = None
    coupon_code: str | None = None
    bonus_amount: Decimal | None = None

    @property
    def total_credit(self) -> Decimal:
        return to_money(self.amount + (self.bonus_amount or ZERO))


@dataclass
class DepositDraft:
    user_id: str
    user_name: str
    amount: Decimal
    utr: str
    sender_upi: str
    screenshot_url: str
    user_display_id: str | None = None
    coupon_code: str | None = None
    bonus_amount: Decimal | None = None
