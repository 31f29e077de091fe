"""Request and response bodies for the HTTP API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# -- records -------------------------------------------------------------


class SignalRef(CamelModel):
    id: str
    title: str


class HighlightOut(CamelModel):
    id: str
    text: str
    note: str | None = None
    start_pos: int | None = None
    end_pos: int | None = None
    signal_id: str
    created_at: datetime


class ThoughtOut(CamelModel):
    id: str
    content: str
    signal_id: str | None = None
    insight_id: str | None = None
    created_at: datetime
    updated_at: datetime


class InsightThoughtOut(ThoughtOut):
    signal: SignalRef | None = None


class SignalOut(CamelModel):
    id: str
    title: str
    content: str
    summary: str | None = None
    source: str | None = None
    source_url: str | None = None
    raw_content: str | None = None
    tags: list[str] = []
    status: str
    created_at: datetime
    updated_at: datetime
    highlights: list[HighlightOut] = []
    thoughts: list[ThoughtOut] = []


class InsightOut(CamelModel):
    id: str
    core_insight: str
    status: str
    preview: str | None = None
    preview_platform: str | None = None
    published_url: str | None = None
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    thoughts: list[InsightThoughtOut] = []
    signals: list[SignalRef] = []


class WebhookConfigOut(CamelModel):
    id: str
    name: str
    url: str
    created_at: datetime
    updated_at: datetime


# -- requests ------------------------------------------------------------


class IngestRequest(CamelModel):
    input_type: str | None = None
    content: str | None = None
    url: str | None = None
    title: str | None = None


class ReviewRequest(CamelModel):
    id: str
    status: str
    thought: str | None = None


class SignalUpdate(CamelModel):
    title: str | None = None
    content: str | None = None
    summary: str | None = None
    source: str | None = None
    source_url: str | None = None
    raw_content: str | None = None
    tags: list[str] | None = None
    status: str | None = None


class ThoughtCreate(CamelModel):
    content: str | None = None
    signal_id: str | None = None
    insight_id: str | None = None


class HighlightCreate(CamelModel):
    signal_id: str | None = None
    text: str | None = None
    note: str | None = None
    start_pos: int | None = None
    end_pos: int | None = None


class InsightCreate(CamelModel):
    core_insight: str | None = None
    thought_ids: list[str] = []
    signal_ids: list[str] = []


class InsightUpdate(CamelModel):
    core_insight: str | None = None
    preview: str | None = None


class FormatRequest(CamelModel):
    platform: str | None = None
    tone: str | None = None


class PublishRequest(CamelModel):
    platform: str | None = None


class GenerateRequest(CamelModel):
    signal_ids: list[str] = []


class PreviewCallback(CamelModel):
    insight_id: str | None = None
    preview: str | None = None
    platform: str | None = None


class PublishConfirmation(CamelModel):
    insight_id: str | None = None
    status: str | None = None
    post_url: str | None = None
    error: str | None = None


class WebhookConfigIn(CamelModel):
    name: str | None = None
    url: str | None = None


# -- responses -----------------------------------------------------------


class SignalListResponse(CamelModel):
    signals: list[SignalOut]
    total: int
    limit: int
    offset: int


class SignalResponse(CamelModel):
    success: bool = True
    signal: SignalOut
    generation_dispatched: bool | None = None


class IngestResponse(CamelModel):
    success: bool = True
    message: str
    signal_id: str | None = None
    insights: list[str] | None = None


class ReceiveResponse(CamelModel):
    success: bool = True
    signal_id: str
    created: bool
    message: str


class ClusterResponse(CamelModel):
    success: bool = True
    count: int
    message: str


class GenerateResponse(CamelModel):
    success: bool = True
    count: int
    message: str


class InsightListResponse(CamelModel):
    insights: list[InsightOut]


class InsightResponse(CamelModel):
    success: bool = True
    insight: InsightOut
    message: str | None = None


class PreviewResponse(CamelModel):
    success: bool = True
    insight_id: str
    status: str
    message: str


class ConfirmResponse(CamelModel):
    success: bool
    insight_id: str
    status: str
    published_url: str | None = None
    error: str | None = None
    message: str


class ThoughtResponse(CamelModel):
    success: bool = True
    thought: ThoughtOut


class ThoughtListResponse(CamelModel):
    thoughts: list[ThoughtOut]


class HighlightResponse(CamelModel):
    success: bool = True
    highlight: HighlightOut


class HighlightListResponse(CamelModel):
    highlights: list[HighlightOut]


class WebhookConfigResponse(CamelModel):
    success: bool = True
    config: WebhookConfigOut


class WebhookConfigListResponse(CamelModel):
    configs: list[WebhookConfigOut]


class SuccessResponse(CamelModel):
    success: bool = True


def error_body(message: str, code: str, detail: Any = None) -> dict[str, Any]:
    return {"success": False, "error": message, "code": code, "detail": detail}
