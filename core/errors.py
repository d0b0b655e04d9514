"""
core/errors.py -- Application error taxonomy.

Service functions raise these; api/main.py owns the single exception handler
that turns them into HTTP responses (plain text for browsers, the JSON error
envelope for API callers). Each class carries its status code and a stable
machine-readable code so the handler never has to inspect messages.
"""


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """A required field is missing or empty."""

    status_code = 400
    code = "validation_error"


class UploadRejectedError(AppError):
    """Upload is missing, not an image, or over the size limit."""

    status_code = 400
    code = "upload_rejected"


class UnauthorizedError(AppError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
