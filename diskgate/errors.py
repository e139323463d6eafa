"""
Error taxonomy of the gateway and the handlers that turn it into HTTP responses.

Every recognized failure carries its own status code and message; anything
else collapses to a bare 500 so no internal detail leaks to clients.
"""
from typing import Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .storage.provider import StorageError, StorageNotFound


logger = structlog.get_logger(__name__)


class GatewayError(Exception):
    status_code: int = 500
    message: str = "Internal server error."

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        self.headers = headers


class InvalidToken(GatewayError):
    """Bad signature, expired or malformed upload token."""

    status_code = 401
    message = "Invalid upload token."

    def __init__(self, message: Optional[str] = None, reason: str = "malformed"):
        super().__init__(message)
        self.reason = reason


class AlreadyUsed(GatewayError):
    status_code = 410
    message = "Gone."


class MissingContentType(GatewayError):
    status_code = 400
    message = "No `Content-Type` header provided."


class UnsupportedContentType(GatewayError):
    status_code = 400
    message = "Unsupported `Content-Type`."


class NotAuthorized(GatewayError):
    status_code = 401
    message = "Authorization required."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": 'Basic realm="diskgate"'})


class NotFound(GatewayError):
    status_code = 404
    message = "Not found."


async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=exc.headers)


async def storage_not_found_handler(request: Request, exc: StorageNotFound):
    return JSONResponse(status_code=NotFound.status_code, content={"message": NotFound.message})


async def storage_error_handler(request: Request, exc: StorageError):
    logger.warning("storage_error", path=request.url.path, method=request.method, error=str(exc))
    return PlainTextResponse("Internal server error.", status_code=500)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
    return PlainTextResponse("Internal server error.", status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(StorageNotFound, storage_not_found_handler)
    # Handled inside the middleware stack so the response keeps request-id and hardening headers
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
