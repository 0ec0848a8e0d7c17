from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.platform.config import settings


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Single source of truth for ALL API responses.
    Automatically sets status = "success" if < 400 else "error"
    """
    status_str = "success" if status_code < 400 else "error"
    data = jsonable_encoder(data) if data is not None else {}

    return JSONResponse(
        status_code=status_code,
        content={
            "status_code": status_code,
            "status": status_str,
            "message": message,
            "data": data,
        },
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )


def error_response(
    *,
    message: str,
    status_code: int,
    details: Optional[str] = None,
    stack: Optional[str] = None,
    data: Optional[Any] = None,
) -> JSONResponse:
    """
    Error envelope. Diagnostic fields are only exposed outside production.
    """
    payload = dict(data or {})
    if not settings.is_production:
        if details:
            payload["details"] = details
        if stack:
            payload["stack"] = stack

    return api_response(data=payload, message=message, status_code=status_code)
