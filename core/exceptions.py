import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error"

# SQLSTATEs for serialization failure and deadlock
RETRYABLE_SQLSTATES = {"40001", "40P01"}
SQLITE_BUSY = 5


class AppError(Exception):
    """Base error rendered as ``{"success": false, "message": ..., "error": ...}``."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = SERVER_ERROR_MESSAGE
    error: Optional[str] = None

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_content(self) -> dict:
        content = {"success": False, "message": self.message}
        if self.error:
            content["error"] = self.error
        return content


class AuthenticationMissing(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"


class EmailNotVerified(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Please verify your email before continuing."
    error = "EMAIL_NOT_VERIFIED"


class OnboardingIncomplete(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "User must complete onboarding"
    error = "ONBOARDING_REQUIRED"


class ConcurrencyConflict(AppError):
    """A uniqueness or isolation violation that local retries could not resolve."""


class UnexpectedStoreFailure(AppError):
    pass


def is_concurrency_conflict(exc: BaseException) -> bool:
    if isinstance(exc, ConcurrencyConflict) or isinstance(exc, IntegrityError):
        return True
    if isinstance(exc, DBAPIError):
        sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
        if sqlstate in RETRYABLE_SQLSTATES:
            return True
        if isinstance(exc, OperationalError):
            # SQLite reports lock and stale-snapshot contention as SQLITE_BUSY
            errorcode = getattr(exc.orig, "sqlite_errorcode", None)
            if errorcode is not None and errorcode & 0xFF == SQLITE_BUSY:
                return True
            if "database is locked" in str(exc.orig):
                return True
    return False


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
        return JSONResponse(content=exc.to_content(), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if isinstance(exc.detail, dict):
            content = {"success": False, **exc.detail}
        else:
            content = {"success": False, "message": str(exc.detail)}
        return JSONResponse(content=content, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        content = {
            "success": False,
            "message": "Invalid request",
            "errors": jsonable_encoder(exc.errors()),
        }
        return JSONResponse(content=content, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            content={"success": False, "message": SERVER_ERROR_MESSAGE},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
