from typing import Optional


class ServiceError(Exception):
    """Base for failures that surface to the caller with a stable code."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(ServiceError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid data"


class ConflictError(ServiceError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Conflicting state"


class ForbiddenError(ServiceError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Insufficient permission"


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class UnauthorizedError(ServiceError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class InternalError(ServiceError):
    pass


_CODES_BY_STATUS = {
    401: UnauthorizedError.code,
    403: ForbiddenError.code,
    404: NotFoundError.code,
    409: ConflictError.code,
    422: ValidationError.code,
}


def code_for_status(status_code: int) -> str:
    if status_code in _CODES_BY_STATUS:
        return _CODES_BY_STATUS[status_code]
    if 400 <= status_code < 500:
        return ValidationError.code
    return InternalError.code


def error_envelope(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}
