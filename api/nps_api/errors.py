from typing import Any


class AppError(Exception):
    """Application error carrying an HTTP status and a machine-readable code."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.headers = headers
        super().__init__(message)


class ValidationError(AppError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    default_code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    default_code = "CONFLICT"


class RateLimitError(AppError):
    status_code = 429
    default_code = "RATE_LIMIT_EXCEEDED"


def error_envelope(code: str, message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


def ok(data: Any = None, meta: dict[str, Any] | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {"success": True, "data": data}
    if meta is not None:
        out["meta"] = meta
    return out
