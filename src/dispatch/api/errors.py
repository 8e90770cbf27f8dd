"""Translate domain errors into HTTP responses.

Every error body has the shape ``{"error": kind, "reason": text}`` so a
client can tell a stale view (409) from a forbidden action (403) from a
missing collaborator (503).
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from dispatch.engine.errors import (
    AuthorizationError,
    ConflictError,
    DependencyUnavailable,
    LifecycleError,
    NotFoundError,
)

logger = structlog.get_logger(__name__)

STATUS_CODES = {
    ConflictError: 409,
    AuthorizationError: 403,
    NotFoundError: 404,
    DependencyUnavailable: 503,
}


def status_code_for(exc: LifecycleError) -> int:
    for error_cls, code in STATUS_CODES.items():
        if isinstance(exc, error_cls):
            return code
    return 400


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    code = status_code_for(exc)
    logger.info(
        "Lifecycle request rejected",
        method=request.method,
        path=request.url.path,
        error=exc.kind,
        reason=exc.reason,
        status_code=code,
    )
    return JSONResponse(status_code=code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    messages = exc.messages if isinstance(exc.messages, dict) else {"_entity": [str(exc.messages)]}
    reason = "; ".join(f"{field}: {', '.join(str(m) for m in msgs)}" for field, msgs in messages.items())
    logger.info("Invalid request", method=request.method, path=request.url.path, reason=reason)
    return JSONResponse(
        status_code=400,
        content={"error": "validation", "reason": reason, "messages": messages},
    )


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.info("Concurrent write rejected", method=request.method, path=request.url.path, reason=str(exc))
    return JSONResponse(
        status_code=409,
        content={"error": ConflictError.kind, "reason": "changed by another request, reload and retry"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then the lifecycle error mapping on top."""
    register_exception_handlers(app)
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
