"""API error type and the exception handlers that render it."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

VALIDATION_FAILED = "VALIDATION_FAILED"
DELIVERY_FAILED = "DELIVERY_FAILED"


class APIError(Exception):
    """Caller-visible failure rendered as ``{success: false, error, reason, ...}``."""

    def __init__(
        self,
        status_code: int,
        message: str,
        reason: str | None = None,
        **extra: Any,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.reason = reason
        self.extra = extra

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.message}
        if self.reason:
            body["reason"] = self.reason
        body.update(self.extra)
        return body


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    logger.warning("Validation failed on %s: %s", request.url.path, errors)
    body = APIError(
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        VALIDATION_FAILED,
        errors=errors,
    ).to_body()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def fallback_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, fallback_handler)
