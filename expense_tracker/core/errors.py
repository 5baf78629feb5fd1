from typing import Any, Optional

from fastapi import status


class ApiError(Exception):
    """Base for errors rendered into the failure envelope."""

    code = "SERVER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details if details is not None else {}
        super().__init__(self.message)


class ValidationFailedError(ApiError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class InvalidIdError(ApiError):
    code = "INVALID_ID"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid transaction ID"


class NotFoundError(ApiError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Transaction not found"


class ServerError(ApiError):
    pass
