import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def _error_payload(code: str, message: str, details):
    return {"code": code, "message": message, "details": details}


class VaultError(HTTPException):
    """Base class for domain errors.

    Subclasses pin an HTTP status and a stable error code; the message is the
    text shown to the end user.
    """

    status_code = 400
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(
            status_code=type(self).status_code,
            detail={"code": self.code, "message": self.message, "details": details},
        )


class ValidationError(VaultError):
    status_code = 422
    code = "validation_error"
    default_message = "Invalid input"


class AuthenticationError(VaultError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class NotFoundError(VaultError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ExpiredError(VaultError):
    status_code = 410
    code = "expired"
    default_message = "Verification code has expired. Please request a new one."


class MismatchError(VaultError):
    status_code = 400
    code = "code_mismatch"
    default_message = "Invalid verification code"


class AlreadyUsedError(VaultError):
    status_code = 409
    code = "already_used"
    default_message = "This code has already been used. Please request a new one."


class AccessDeniedError(VaultError):
    """Raised when an emergency-access or permission guard fails.

    ``reason`` is kept for logs only; callers outside the service layer see
    the generic message.
    """

    status_code = 403
    code = "access_denied"
    default_message = "Emergency access is not available for this email."

    def __init__(self, message: str | None = None, reason: str | None = None):
        self.reason = reason
        super().__init__(message)


class ConflictError(VaultError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class DeliveryError(VaultError):
    status_code = 502
    code = "delivery_failed"
    default_message = "We could not send the email. Please try again."


class InvalidStateError(VaultError):
    status_code = 409
    code = "invalid_state"
    default_message = "Action not allowed in the current step"


def register_error_handlers(app) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        code = f"http_{exc.status_code}"
        message = "Request failed"
        details = None
        if isinstance(detail, dict):
            code = detail.get("code", code)
            message = detail.get("message", message)
            details = detail.get("details")
        elif isinstance(detail, str):
            message = detail
        else:
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(code, message, details),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # exc.errors() ctx may contain raw Exception objects (not JSON-serialisable).
        # The submitted input is dropped so passwords and codes are not echoed.
        errors = [
            {k: str(v) if k == "ctx" else v for k, v in err.items() if k != "input"}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content=_error_payload("validation_error", "Validation error", errors),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error on %s %s", request.method, request.url.path
        )
        return JSONResponse(
            status_code=500,
            content=_error_payload(
                "internal_error", "Something went wrong. Please try again.", None
            ),
        )
