"""Global exception handlers that turn domain errors into JSON responses.

Client faults (4xx) are logged at warning level, transient and unexpected
faults at error level. The catch-all handler never leaks internal details.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from kocmoc.core.errors import KocmocError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:
    @app.exception_handler(KocmocError)
    async def domain_error_handler(request: Request, exc: KocmocError) -> JSONResponse:
        """Map a domain error onto its HTTP status and JSON body."""
        level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
        logger.log(
            level,
            "%s on %s %s: %s",
            exc.code,
            request.method,
            request.url.path,
            exc.message,
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for anything the services did not anticipate."""
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "An unexpected error occurred", "code": "internal"},
        )
