"""FastAPI application factory.

``create_app(pipeline=..., config=...)`` is called by ``aiopsanalyzer.app``
when serving and directly by tests with a mocked pipeline. Handlers reach
their collaborators through ``request.app.state``.

Every non-2xx body is the ``ErrorResponse`` envelope ``{error, detail}``:

    400  malformed request or unresolvable target
    502  reasoning service unreachable, or its answer failed validation
    503  every evidence source failed
    500  anything unexpected (detail is never leaked)
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from aiopsanalyzer.api.routes import metrics_router, router
from aiopsanalyzer.api.schemas import ErrorResponse
from aiopsanalyzer.errors import AIOpsError, DecisionError, EvidenceUnavailableError, ResolutionError, TransportError

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"

_FIELD_ERROR_CODES = {
    "selector": "INVALID_SELECTOR",
    "namespace": "INVALID_NAMESPACE",
}


def status_for(exc: AIOpsError) -> int:
    """HTTP status for a pipeline error."""
    if isinstance(exc, ResolutionError):
        return 400
    if isinstance(exc, EvidenceUnavailableError):
        return 503
    if isinstance(exc, DecisionError | TransportError):
        return 502
    return 500


def _envelope(status: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status, content=ErrorResponse(error=error, detail=detail).model_dump())


def create_app(pipeline: Any, config: Any = None) -> FastAPI:
    """Build the REST application around *pipeline*.

    Args:
        pipeline: HealingPipeline (or a test double exposing ``run`` and
                  ``dispatcher``).
        config:   Optional AIOpsConfig kept on ``app.state``.
    """
    from aiopsanalyzer import __version__

    app = FastAPI(
        title="AIOpsAnalyzer",
        summary="Evidence-driven remediation proposals for Kubernetes workloads",
        version=__version__,
        docs_url=f"{_API_PREFIX}/docs",
        redoc_url=f"{_API_PREFIX}/redoc",
        openapi_url=f"{_API_PREFIX}/openapi.json",
    )
    app.state.pipeline = pipeline
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)
    app.include_router(metrics_router)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        field = ""
        message = "invalid request"
        if errors:
            loc = errors[0].get("loc", ())
            field = str(loc[-1]) if loc else ""
            message = str(errors[0].get("msg", message))
        return _envelope(400, _FIELD_ERROR_CODES.get(field, "INVALID_REQUEST"), message)

    @app.exception_handler(AIOpsError)
    async def pipeline_error_handler(request: Request, exc: AIOpsError) -> JSONResponse:
        status = status_for(exc)
        _log.warning(
            "request_failed",
            path=str(request.url.path),
            status=status,
            error_code=exc.code,
            error=str(exc),
        )
        return _envelope(status, exc.code, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return _envelope(500, "INTERNAL_ERROR", "An unexpected error occurred.")

    return app
