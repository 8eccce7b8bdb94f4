from typing import Any

from fastapi import status

HTTP_422_UNPROCESSABLE = 422


class AppError(Exception):
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        if details is not None:
            self.details = details

        super().__init__(self.message)


class ValidationError(AppError):
    message = "Validation error"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class AuthError(AppError):
    message = "Authentication required"
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionError(AppError):  # type: ignore[override]
    message = "Access denied. Insufficient permissions."
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(AppError):
    message = "Internal Server Error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


MESSAGE_BY_STATUS: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: ValidationError.message,
    status.HTTP_401_UNAUTHORIZED: AuthError.message,
    status.HTTP_403_FORBIDDEN: PermissionError.message,
    status.HTTP_404_NOT_FOUND: NotFoundError.message,
    HTTP_422_UNPROCESSABLE: ValidationError.message,
}


def error_payload(message: str, details: Any | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": False, "message": message}
    if details is not None:
        payload["details"] = details
    return payload


def resolve_error_message(status_code: int) -> str:
    if status_code in MESSAGE_BY_STATUS:
        return MESSAGE_BY_STATUS[status_code]
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.message
    return "Request failed"
