"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "offline": false,    // true when served from the offline mirror
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    offline: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, offline: bool = False) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data, offline=offline)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


def served_response(data: BaseModel) -> ApiResponse:
    """Envelope for a service result that carries its own `offline` flag."""
    offline = bool(getattr(data, "offline", False))
    return success_response(data.model_dump(mode="json", exclude={"offline"}), offline=offline)
