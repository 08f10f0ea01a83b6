"""
Typed failures raised by the auth layer, and the handlers that turn
them into HTTP responses.

Every failure carries a ``kind`` so callers branch on an explicit
discriminator instead of on message text or library exception names.
Credential and token failures share one message per
boundary (login, refresh, reset) so a caller can never tell which
part of a check failed.
"""

import enum
import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FailureKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    CONFLICT = "CONFLICT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    NOT_FOUND = "NOT_FOUND"
    UNEXPECTED = "UNEXPECTED"


class AuthError(Exception):
    """Base class for every failure the Session Authority reports."""

    kind: FailureKind = FailureKind.UNEXPECTED
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ── Validation ───────────────────────────────────────────────────────
class MissingTokenError(AuthError):
    kind = FailureKind.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Refresh token is required"


class PasswordTooLongError(AuthError):
    """bcrypt only looks at the first 72 bytes; refuse rather than truncate."""

    kind = FailureKind.VALIDATION
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Password must be at most 72 bytes"


# ── Conflict ─────────────────────────────────────────────────────────
class EmailAlreadyRegisteredError(AuthError):
    kind = FailureKind.CONFLICT
    status_code = status.HTTP_409_CONFLICT
    message = "Email already registered"


# ── Credentials ──────────────────────────────────────────────────────
class InvalidCredentialsError(AuthError):
    kind = FailureKind.INVALID_CREDENTIALS
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid email or password"


class CurrentPasswordMismatchError(AuthError):
    # 400, not 401: the caller's access token is fine, only the form input is wrong
    kind = FailureKind.INVALID_CREDENTIALS
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Current password is incorrect"


# ── Tokens ───────────────────────────────────────────────────────────
class InvalidTokenError(AuthError):
    """Bad signature, expired, malformed, wrong type or revoked."""

    kind = FailureKind.INVALID_TOKEN
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid or expired token"


class InvalidOrExpiredTokenError(AuthError):
    """Reset or verification challenge that does not match or has lapsed."""

    kind = FailureKind.INVALID_TOKEN
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Token is invalid or has expired"


# ── Not found ────────────────────────────────────────────────────────
class UserNotFoundError(AuthError):
    kind = FailureKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found"


# ── Out-of-band delivery ─────────────────────────────────────────────
class NotificationError(Exception):
    """Raised by a notifier when a message could not be delivered.

    Never surfaces in a response: delivery is best-effort.
    """


# ── HTTP mapping ─────────────────────────────────────────────────────
def _body(detail: str, code: FailureKind, request: Request, exc: Exception) -> dict:
    body = {"detail": detail, "code": code.value}
    if request.app.state.settings.DEBUG:
        body["error"] = repr(exc)
        body["traceback"] = traceback.format_exception(exc)
    return body


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    logger.info(
        "%s %s -> %s (%s)", request.method, request.url.path, exc.status_code, exc.kind.value,
    )
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(exc.message, exc.kind, request, exc),
        headers=headers,
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body("Internal server error", FailureKind.UNEXPECTED, request, exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
