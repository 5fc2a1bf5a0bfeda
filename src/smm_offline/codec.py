"""JSON records stored by the offline mirror.

Records use the storefront's camelCase field names (orders, transactions and
deposits carry their timestamp as `date`) so a mirror written by the browser
client reads back unchanged. None fields are left out of the JSON entirely,
and timestamps come back as datetimes rather than strings.
"""

import dataclasses
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from src.smm_catalog.domain.models import Category, ServicePackage
from src.smm_common.datetime_utils import ensure_aware
from src.smm_common.enums import (
    CouponType,
    DepositStatus,
    OrderStatus,
    TransactionType,
    UserRole,
    UserStatus,
)
from src.smm_common.money import to_money
from src.smm_coupon.domain.models import Coupon
from src.smm_ledger.domain.models import DepositRequest, Order, Transaction, User

class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_domain(cls, obj: Any) -> "_Record":
        return cls.model_validate(dataclasses.asdict(obj))

    def to_domain(self) -> Any:
        raise NotImplementedError


class UserRecord(_Record):
    id: str
    display_id: str | None = None
    name: str
    email: str
    role: UserRole = UserRole.USER
    wallet_balance: Decimal = Decimal(0)
    total_spent: Decimal = Decimal(0)
    status: UserStatus = UserStatus.ACTIVE
    whatsapp: str | None = None
    created_at: datetime | None = None

    def to_domain(self) -> User:
        return User(
            id=self.id,
            display_id=self.display_id,
            name=self.name,
            email=self.email,
            role=self.role,
            wallet_balance=to_money(self.wallet_balance),
            total_spent=to_money(self.total_spent),
            status=self.status,
            whatsapp=self.whatsapp,
            created_at=ensure_aware(self.created_at) if self.created_at else None,
        )


class OrderRecord(_Record):
    id: str
    display_id: str
    user_id: str
    user_name: str
    service: str
    target_url: str
    quantity: int
    amount: Decimal
    status: OrderStatus
    created_at: datetime = Field(alias="date")
    service_id: str | None = None
    unit: str | None = None
    user_whatsapp: str | None = None
    coupon_code: str | None = None
    is_limited_offer: bool = False
    last_updated_by: str | None = None

    def to_domain(self) -> Order:
        return Order(
            id=self.id,
            display_id=self.display_id,
            user_id=self.user_id,
            user_name=self.user_name,
            service=self.service,
            target_url=self.target_url,
            quantity=self.quantity,
            amount=to_money(self.amount),
            status=self.status,
            created_at=ensure_aware(self.created_at),
            service_id=self.service_id,
            unit=self.unit,
            user_whatsapp=self.user_whatsapp,
            coupon_code=self.coupon_code,
            is_limited_offer=self.is_limited_offer,
            last_updated_by=self.last_updated_by,
        )


class TransactionRecord(_Record):
    id: str
    user_id: str
    type: TransactionType
    amount: Decimal
    description: str
    status: str
    related_id: str
    created_at: datetime = Field(alias="date")

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            amount=to_money(self.amount),
            description=self.description,
            status=self.status,
            related_id=self.related_id,
            created_at=ensure_aware(self.created_at),
        )


class DepositRecord(_Record):
    id: str
    display_id: str
    user_id: str
    user_name: str
    amount: Decimal
    utr: str
    sender_upi: str
    screenshot_url: str
    status: DepositStatus
    created_at: datetime = Field(alias="date")
    user_display_id: str | None = None
    coupon_code: str | None = None
    bonus_amount: Decimal | None = None

    def to_domain(self) -> DepositRequest:
        return DepositRequest(
            id=self.id,
            display_id=self.display_id,
            user_id=self.user_id,
            user_name=self.user_name,
            amount=to_money(self.amount),
            utr=self.utr,
            sender_upi=self.sender_upi,
            screenshot_url=self.screenshot_url,
            status=self.status,
            created_at=ensure_aware(self.created_at),
            user_display_id=self.user_display_id,
            coupon_code=self.coupon_code,
            bonus_amount=to_money(self.bonus_amount) if self.bonus_amount is not None else None,
        )


class CouponRecord(_Record):
    id: str
    code: str
    discount_percent: Decimal
    usage_limit: int = 0
    used_count: int = 0
    created_at: datetime
    expires_at: datetime | None = None
    is_auto_apply: bool = False
    type: CouponType = CouponType.DISCOUNT

    def to_domain(self) -> Coupon:
        return Coupon(
            id=self.id,
            code=self.code.upper(),
            discount_percent=self.discount_percent,
            usage_limit=self.usage_limit,
            used_count=self.used_count,
            created_at=ensure_aware(self.created_at),
            expires_at=ensure_aware(self.expires_at) if self.expires_at else None,
            is_auto_apply=self.is_auto_apply,
            type=self.type,
        )


class ServiceRecord(_Record):
    id: str
    title: str
    description: str = ""
    rate: Decimal
    rate_per_quantity: int
    min_quantity: int
    max_quantity: int
    category_id: str
    service_type: str = "Other"
    unit_name: str = ""
    input_type: str = "link"
    icon_name: str = "HeartIcon"
    min_completion_time: str | None = None
    max_completion_time: str | None = None
    is_limited_offer: bool = False
    expiry_date: datetime | None = None
    total_limit: int = 0
    daily_limit: int = 0
    user_daily_limit: int = 0
    cooldown_minutes: int = 0
    current_orders_count: int = 0

    def to_domain(self) -> ServicePackage:
        return ServicePackage(
            **self.model_dump(exclude={"expiry_date"}),
            expiry_date=ensure_aware(self.expiry_date) if self.expiry_date else None,
        )



class CategoryRecord(_Record):
    id: str
    name: str
    icon_name: str = "HeartIcon"

    def to_domain(self) -> Category:
        return Category(**self.model_dump())


RecordT = TypeVar("RecordT", bound=_Record)


def decode(raw: str | None, record_cls: type[RecordT]) -> list[RecordT]:
    """Parse one stored collection; a missing key is an empty collection."""
    if not raw:
        return []
    return TypeAdapter(list[record_cls]).validate_json(raw)  # type: ignore[valid-type]


def encode(records: list[_Record]) -> str:
    """Serialise a collection, omitting None fields."""
    return "[" + ",".join(
        r.model_dump_json(by_alias=True, exclude_none=True) for r in records
    ) + "]"
