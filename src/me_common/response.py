"""Error response envelope.

Every AppError is rendered as:
{
    "code": 4004,              // application error code
    "message": "...",
    "data": null,
    "timestamp": "...",
    "request_id": "..."
}
Successful responses are the endpoint's own schema.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def error_response(code: int, message: str, request_id: str | None = None) -> ApiResponse:
    if request_id is None:
        return ApiResponse(code=code, message=message, data=None)
    return ApiResponse(code=code, message=message, data=None, request_id=request_id)
