"""Service package domain model — pure dataclass, no business logic."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class ServicePackage:
    id: str                      # 6-digit display id, e.g. "000012"
    title: str
    description: str
    rate: Decimal                # price per `rate_per_quantity` units
    rate_per_quantity: int
    min_quantity: int
    max_quantity: int
    category_id: str
    service_type: str            # Followers / Likes / Views / ...
    unit_name: str
    input_type: str = "link"     # link / username
    icon_name: str = "HeartIcon"
    min_completion_time: str | None = None
    max_completion_time: str | None = None
    # Limited offer fields (0 = unlimited)
    is_limited_offer: bool = False
    expiry_date: datetime | None = None
    total_limit: int = 0
    daily_limit: int = 0
    user_daily_limit: int = 0
    cooldown_minutes: int = 0
    current_orders_count: int = 0


@dataclass
class ServiceDraft:
    title: str
    description: str
    rate: Decimal
    rate_per_quantity: int
    min_quantity: int
    max_quantity: int
    category_id: str
    service_type: str
    unit_name: str
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


@dataclass
class Category:
    id: str                      # "cat-instagram", or a generated uuid
    name: str
    icon_name: str = "HeartIcon"
