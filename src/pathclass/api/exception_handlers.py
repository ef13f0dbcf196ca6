"""Map pipeline exceptions onto HTTP error responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pathclass.classification.errors import InvalidInputError
from pathclass.classification.orchestrator import INVALID_INPUT_MESSAGE

LOGGER = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the error mapping on ``app``.

    Invalid payloads of any shape answer 400 with the same message. Routing errors
    such as 405 keep their status but use the same ``{"error": ...}`` body. Anything
    else answers 500 without leaking exception details.
    """

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
        LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_INPUT_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return error_response(status.HTTP_400_BAD_REQUEST, INVALID_INPUT_MESSAGE)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, exc)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


__all__ = ["INTERNAL_ERROR_MESSAGE", "error_response", "setup_exception_handlers"]
