"""Pydantic request and response schemas for the REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from aiopsanalyzer.models.target import Target


class AnalyzeRequest(BaseModel):
    """Body of ``POST /api/v1/analyze``."""

    namespace: str = Field(default="default", max_length=253)
    selector: str = Field(min_length=1, max_length=1024)
    replicas: int | None = Field(default=None, ge=0)
    cpu_limits: str = ""
    cpu_requests: str = ""
    memory_limits: str = ""

    @field_validator("selector")
    @classmethod
    def selector_must_parse(cls, value: str) -> str:
        target = Target.from_selector("default", value)
        if target.is_empty:
            raise ValueError("selector has no terms")
        return value


class HealthResponse(BaseModel):
    status: str
    version: str
    channels: list[str]
    pending: int


class SectionResponse(BaseModel):
    source: str
    status: str
    error: str = ""


class AnalyzeResponse(BaseModel):
    """Outcome of one pipeline run."""

    run_id: str
    namespace: str
    selector: str
    action: str
    reason: str
    decision: dict[str, Any]
    evidence: list[SectionResponse]
    request_id: str | None = None
    notified: bool = False
    delivery_error: str | None = None


class PendingRequestResponse(BaseModel):
    request_id: str
    namespace: str
    reason: str
    kind: str
    label_selector: str
    risk_level: str
    patch_file: str
    requested_at: str
    expires_at: str
    delivered: bool
    delivery_errors: list[str]


class PendingListResponse(BaseModel):
    count: int
    requests: list[PendingRequestResponse]


class RenotifyResponse(BaseModel):
    attempted: int
    delivered: int
    failed: list[str]


class ErrorResponse(BaseModel):
    """Uniform error envelope for every non-2xx response."""

    error: str
    detail: str
