"""Response envelope helpers for consistent API responses."""

from typing import Any

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str
    message: str


class ApiResponse(BaseModel):
    """Standard API response envelope."""

    data: Any | None = None
    error: ErrorDetail | None = None


def success_response(data: Any) -> dict[str, Any]:
    """Create a success response envelope."""
    return ApiResponse(data=data).model_dump(mode="json")


def error_response(code: str, message: str) -> dict[str, Any]:
    """Create an error response envelope."""
    return ApiResponse(error=ErrorDetail(code=code, message=message)).model_dump(mode="json")
