from typing import Any, Optional
from pydantic import BaseModel


class ErrorObject(BaseModel):
    code: str
    message: str
    details: Any = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


class ResponseEnvelope(BaseModel):
    success: bool
    data: Any | None = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None
    error: Optional[ErrorObject] = None


def make_success_response(
    data: Any,
    message: Optional[str] = None,
    pagination: Optional[Pagination] = None,
) -> dict[str, Any]:
    response: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        response["message"] = message
    if pagination is not None:
        response["pagination"] = pagination
    return response


def make_error_response(code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details if details is not None else {},
        },
    }
