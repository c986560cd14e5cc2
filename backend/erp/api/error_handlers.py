"""Error Handlers — global exception handlers for the ERP API.

Invariants:
    - ErpError → {ok: false, error_code, message, category, ...extras}
    - RequestValidationError → 400 VALIDATION_ERROR with field-level details
    - Exception (catch-all) → 500 INTERNAL_ERROR, never leaks internal details

Design Decisions:
    - Three-layer handler: domain (ErpError), validation (Pydantic), catch-all (Exception)
    - Extracted from main.py so the app module only wires routers
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from erp.core.errors import ErpError, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_erp_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_erp_error_handler(app: FastAPI) -> None:
    @app.exception_handler(ErpError)
    async def erp_error_handler(request: Request, exc: ErpError):
        """Handle all ERP domain/infrastructure errors."""
        log = (
            logger.error if exc.severity == ErrorSeverity.CRITICAL
            else logger.warning
        )
        log(
            f"ErpError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
            extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "error_code": "INTERNAL_ERROR",
                "message": "Se ha producido un error inesperado",
                "category": "internal",
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    first = exc.errors()[0] if exc.errors() else None
    message = first["msg"] if first else "Datos de entrada no válidos"
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return {
        "ok": False,
        "error_code": "VALIDATION_ERROR",
        "message": message,
        "category": "validation",
        "details": [
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in exc.errors()
        ],
    }
