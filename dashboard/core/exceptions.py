"""
Error taxonomy for the dashboard API.

Storage failures, form validation failures and missing records are all
recovered at the request boundary and rendered as JSON messages.
"""
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dashboard.core.logger import logger


class DashboardError(Exception):
    """Base application error"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        return {"message": self.message}


class StorageError(DashboardError):
    """The backing store rejected a fetch or mutation"""
    status_code = status.HTTP_502_BAD_GATEWAY


class RecordFormatError(StorageError):
    """A stored row does not match the expected schema"""


class FormValidationError(DashboardError):
    """Input rejected before any storage call"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None, form: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.field = field
        self.form = form

    def to_content(self) -> Dict[str, Any]:
        # Hand the submitted form back so the client can keep its state
        return {"message": self.message, "field": self.field, "form": _redact(self.form)}


class RecordNotFoundError(DashboardError):
    """Record deleted or owned by another account"""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, back: str):
        super().__init__(message)
        self.back = back

    def to_content(self) -> Dict[str, Any]:
        return {"message": self.message, "back": self.back}


class AuthenticationError(DashboardError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class InvitationError(DashboardError):
    """Signup attempted without a matching invitation record"""
    status_code = status.HTTP_403_FORBIDDEN


class ConfigurationError(DashboardError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError):
        if isinstance(exc, StorageError):
            logger.error(f"❌ Storage failure on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.warning(f"⚠️ {type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")

        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_content()))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"⚠️ Invalid request body on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message": "Some fields are missing or invalid.",
                "errors": jsonable_encoder(exc.errors(), exclude={"input", "ctx"}),
                "form": _redact(jsonable_encoder(exc.body)),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        # The text goes in as an argument: loguru would treat braces in it as fields
        logger.opt(exception=exc).error("🔥 UNHANDLED ERROR on {} {}: {}", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal Server Error", "detail": "An unexpected error occurred. Please contact support."}
        )


def _redact(form: Any) -> Any:
    if not isinstance(form, dict):
        return form
    return {
        key: ("" if "password" in key.lower() else value)
        for key, value in form.items()
    }
