"""统一响应包装 {success, message, data}"""

from datetime import datetime, timezone
from typing import Any

from budget_alert.schemas.common import ApiResponse


def success_response(data: Any = None, message: str = "Success") -> ApiResponse:
    return ApiResponse(
        success=True,
        message=message,
        data=data,
        timestamp=datetime.now(timezone.utc),
    )


def error_content(message: str, errors: list[str] | None = None) -> dict:
    return {
        "success": False,
        "message": message,
        "errors": errors,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
