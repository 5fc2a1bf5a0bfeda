"""Pydantic schemas for the catalog API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from src.smm_catalog.domain.models import Category, ServiceDraft, ServicePackage


class CreateServiceRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    rate: Decimal = Field(..., ge=0, decimal_places=2)
    rate_per_quantity: int = Field(1000, gt=0)
    min_quantity: int = Field(..., gt=0)
    max_quantity: int = Field(..., gt=0)
    category_id: str
    service_type: str = "Other"
    unit_name: str = ""
    input_type: str = Field("link", pattern="^(link|username)$")
    icon_name: str = "HeartIcon"
    min_completion_time: str | None = None
    max_completion_time: str | None = None
    is_limited_offer: bool = False
    expiry_date: datetime | None = None
    total_limit: int = Field(0, ge=0)
    daily_limit: int = Field(0, ge=0)
    user_daily_limit: int = Field(0, ge=0)
    cooldown_minutes: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "CreateServiceRequest":
        if self.min_quantity > self.max_quantity:
            raise ValueError("min_quantity must not exceed max_quantity")
        return self

    def to_draft(self) -> ServiceDraft:
        return ServiceDraft(**self.model_dump())


class ServiceResponse(BaseModel):
    id: str
    title: str
    description: str
    rate: Decimal
    rate_per_quantity: int
    min_quantity: int
    max_quantity: int
    category_id: str
    service_type: str
    unit_name: str
    input_type: str
    icon_name: str
    min_completion_time: str | None = None
    max_completion_time: str | None = None
    is_limited_offer: bool
    expiry_date: datetime | None = None
    total_limit: int
    daily_limit: int
    user_daily_limit: int
    cooldown_minutes: int
    current_orders_count: int
    locked_until: datetime | None = None
    offline: bool = False

    @classmethod
    def from_domain(
        cls,
        service: ServicePackage,
        locked_until: datetime | None = None,
        offline: bool = False,
    ) -> "ServiceResponse":
        return cls(
            **{k: getattr(service, k) for k in ServicePackage.__dataclass_fields__},
            locked_until=locked_until,
            offline=offline,
        )


class ServiceListResponse(BaseModel):
    items: list[ServiceResponse]
    offline: bool = False


class QuoteResponse(BaseModel):
    service_id: str
    quantity: int
    base_amount: Decimal
    amount: Decimal
    amount_display: str
    coupon_code: str | None = None
    offline: bool = False


class CreateCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    icon_name: str = "HeartIcon"


class CategoryResponse(BaseModel):
    id: str
    name: str
    icon_name: str
    offline: bool = False

    @classmethod
    def from_domain(cls, category: Category, offline: bool = False) -> "CategoryResponse":
        return cls(id=category.id, name=category.name, icon_name=category.icon_name, offline=offline)


class CategoryListResponse(BaseModel):
    items: list[CategoryResponse]
    offline: bool = False
