"""
Terminal error renderer.

Every error in the pipeline lands here. The status comes from the error
(500 when it has none) and the `error` template is rendered with:

  message - always the error's message
  error   - full detail (name, status, message, stack) in development, {} otherwise
"""

import logging
import traceback
from typing import Any

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import Response

from errors import HTTPError
from rendering import Renderer

logger = logging.getLogger(__name__)

ERROR_TEMPLATE = "error"


def error_status(error: BaseException) -> int:
    if isinstance(error, HTTPError):
        return error.status
    if isinstance(error, HTTPException):
        return error.status_code
    if isinstance(error, RequestValidationError):
        return 422
    status = getattr(error, "status", None)
    if isinstance(status, int) and 400 <= status < 600:
        return status
    return 500


def error_message(error: BaseException) -> str:
    if isinstance(error, HTTPError):
        return error.message
    if isinstance(error, HTTPException):
        return str(error.detail)
    if isinstance(error, RequestValidationError):
        return "Request validation failed"
    return str(error) or type(error).__name__


def error_detail(error: BaseException, status: int) -> dict[str, Any]:
    detail: dict[str, Any] = {
        "name": type(error).__name__,
        "status": status,
        "message": error_message(error),
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }
    if isinstance(error, HTTPError) and error.type:
        detail["type"] = error.type
    if isinstance(error, RequestValidationError):
        detail["errors"] = error.errors()
    return detail


class ErrorRenderer:
    def __init__(self, renderer: Renderer, expose_detail: bool):
        self.renderer = renderer
        self.expose_detail = expose_detail

    def render(self, request: Request, error: BaseException) -> Response:
        status = error_status(error)
        if status >= 500:
            logger.error(
                "%s %s failed with %s",
                request.method,
                request.url.path,
                status,
                exc_info=(type(error), error, error.__traceback__),
            )

        context = {
            "message": error_message(error),
            "error": error_detail(error, status) if self.expose_detail else {},
        }
        response = self.renderer.render(request, ERROR_TEMPLATE, context, status_code=status)
        if isinstance(error, HTTPException) and error.headers:
            response.headers.update(error.headers)
        return response

    async def handle_exception(self, request: Request, exc: Exception) -> Response:
        """Exception-handler signature for the mounted router app."""
        return self.render(request, exc)
