import traceback

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.features.audit.exceptions import AuditError
from app.platform.logger import get_logger
from app.platform.response import api_response, error_response

logger = get_logger(__name__)


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(message=str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(AuditError)
    async def audit_exception_handler(request: Request, exc: AuditError):
        if exc.status_code >= 500:
            logger.error(f"Audit failed for {request.url.path}: {exc}")
        else:
            logger.warning(f"Audit rejected for {request.url.path}: {exc}")
        return error_response(
            message=exc.public_message,
            status_code=exc.status_code,
            details=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return error_response(
            message="Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=str(exc),
        )
