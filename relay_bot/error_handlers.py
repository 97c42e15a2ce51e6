"""
Exception handlers for the relay bot HTTP surface
"""

import logging
import traceback
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions raised by FastAPI or Starlette"""
    logger.warning(f"HTTP exception on {request.url.path}: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "status_code": exc.status_code,
            "message": str(exc.detail),
            "path": str(request.url.path)
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body validation errors"""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Invalid request data",
            "details": [
                {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ],
            "path": str(request.url.path)
        }
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions"""
    error_id = uuid.uuid4().hex[:12]
    logger.error(f"Unhandled exception (ID: {error_id}): {exc}", exc_info=exc)

    content = {
        "error": "internal_server_error",
        "error_id": error_id,
        "path": str(request.url.path)
    }
    if request.app.debug:
        content["message"] = str(exc)
        content["type"] = exc.__class__.__name__
        content["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    else:
        content["message"] = "An internal error occurred. Please contact support with the error ID."

    return JSONResponse(status_code=500, content=content)


def register_error_handlers(app):
    """Register all error handlers with the FastAPI app"""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
