"""Route handlers for the AIOpsAnalyzer REST API.

Dependencies (pipeline, config) live on ``request.app.state``; see
``aiopsanalyzer.api.app.create_app``.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from aiopsanalyzer.api.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    HealthResponse,
    PendingListResponse,
    PendingRequestResponse,
    RenotifyResponse,
    SectionResponse,
)
from aiopsanalyzer.models.decision import ApprovalRequest
from aiopsanalyzer.models.target import Target, WorkloadBaseline

_log = structlog.get_logger(component="api.routes")

router = APIRouter()
metrics_router = APIRouter()


def _pending_entry(req: ApprovalRequest) -> PendingRequestResponse:
    heal = req.heal
    return PendingRequestResponse(
        request_id=req.request_id,
        namespace=heal.namespace,
        reason=heal.reason,
        kind=heal.target_kind,
        label_selector=heal.target_selector,
        risk_level=heal.risk_level.value,
        patch_file=heal.patch_file_name,
        requested_at=req.requested_at.isoformat(),
        expires_at=req.expires_at.isoformat(),
        delivered=req.delivered,
        delivery_errors=list(req.delivery_errors),
    )


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from aiopsanalyzer import __version__

    pipeline = request.app.state.pipeline
    pipeline.dispatcher.expire_pending()
    notifier = getattr(pipeline.dispatcher, "notifier", None)
    return HealthResponse(
        status="ok",
        version=__version__,
        channels=list(getattr(notifier, "channel_names", [])),
        pending=len(pipeline.dispatcher.pending),
    )


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(body: AnalyzeRequest, request: Request) -> AnalyzeResponse:
    """Run one decision cycle. Pipeline errors are mapped by the app-level handler."""
    target = Target.from_selector(
        body.namespace,
        body.selector,
        baseline=WorkloadBaseline(
            replicas=body.replicas,
            cpu_limits=body.cpu_limits,
            cpu_requests=body.cpu_requests,
            memory_limits=body.memory_limits,
        ),
    )
    result = await request.app.state.pipeline.run(target)

    dispatch = result.dispatch
    return AnalyzeResponse(
        run_id=result.run_id,
        namespace=target.namespace,
        selector=target.selector(),
        action=str(result.outcome.action),
        reason=result.outcome.reason,
        decision=result.outcome.to_dict(),
        evidence=[
            SectionResponse(source=str(s.source), status=str(s.status), error=s.error) for s in result.report.sections
        ],
        request_id=dispatch.request_id,
        notified=dispatch.notified,
        delivery_error=str(dispatch.delivery_error) if dispatch.delivery_error else None,
    )


@router.get("/pending", response_model=PendingListResponse)
async def list_pending(request: Request) -> PendingListResponse:
    dispatcher = request.app.state.pipeline.dispatcher
    dispatcher.expire_pending()
    requests = [_pending_entry(r) for r in dispatcher.pending.all()]
    return PendingListResponse(count=len(requests), requests=requests)


@router.post("/pending/renotify", response_model=RenotifyResponse)
async def renotify(request: Request) -> RenotifyResponse:
    results = await request.app.state.pipeline.dispatcher.renotify()
    failed = [r.request_id for r in results if not r.notified and r.request_id]
    _log.info("renotify_completed", attempted=len(results), failed=len(failed))
    return RenotifyResponse(attempted=len(results), delivered=len(results) - len(failed), failed=failed)


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
