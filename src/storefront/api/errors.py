"""HTTP mapping for storefront errors.

Protean's own handlers cover ``ValidationError`` (400) and
``ObjectNotFoundError`` (404); the storefront's error types are added here.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_protean_handlers

from storefront.exceptions import ConflictError, PersistenceError, StateError

logger = structlog.get_logger(__name__)


async def _state_error_handler(request: Request, exc: StateError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": str(exc), "current": exc.current, "target": exc.target},
    )


async def _conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": str(exc)})


async def _persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Request failed on persistence", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    register_protean_handlers(app)
    app.add_exception_handler(StateError, _state_error_handler)
    app.add_exception_handler(ConflictError, _conflict_error_handler)
    app.add_exception_handler(PersistenceError, _persistence_error_handler)
