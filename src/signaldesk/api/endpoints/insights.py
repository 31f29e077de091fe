"""
Insight API endpoints: drafting, format/publish actions, generation, and the
preview and publish-confirmation callbacks from the automation engine.
"""

from fastapi import APIRouter, Depends

from signaldesk.api.deps import get_insight_service, get_signal_service
from signaldesk.api.schemas import (
    ConfirmResponse,
    FormatRequest,
    GenerateRequest,
    GenerateResponse,
    InsightCreate,
    InsightListResponse,
    InsightOut,
    InsightResponse,
    InsightUpdate,
    PreviewCallback,
    PreviewResponse,
    PublishConfirmation,
    PublishRequest,
    SuccessResponse,
)
from signaldesk.lifecycle.insights import InsightService
from signaldesk.lifecycle.signals import SignalService
from signaldesk.lifecycle.states import InsightStatus

router = APIRouter()


@router.get("", response_model=InsightListResponse)
def list_insights(status: str | None = None, insights: InsightService = Depends(get_insight_service)):
    return InsightListResponse(
        insights=[InsightOut.model_validate(i) for i in insights.list(status=status)]
    )


@router.post("", response_model=InsightResponse, status_code=201)
def create_insight(payload: InsightCreate, insights: InsightService = Depends(get_insight_service)):
    insight = insights.create(
        payload.core_insight or "",
        thought_ids=payload.thought_ids,
        signal_ids=payload.signal_ids,
    )
    return InsightResponse(insight=InsightOut.model_validate(insight))


@router.post("/generate", response_model=GenerateResponse)
def generate_insights(payload: GenerateRequest, signals: SignalService = Depends(get_signal_service)):
    """Ask the generation workflow to draft insights from the given signals."""
    outcome = signals.generate(payload.signal_ids)
    return GenerateResponse(count=outcome.count, message="Generation triggered successfully")


@router.post("/preview", response_model=PreviewResponse)
def receive_preview(payload: PreviewCallback, insights: InsightService = Depends(get_insight_service)):
    """Callback carrying the formatted preview for an insight."""
    insight = insights.apply_preview(
        payload.insight_id or "", payload.preview or "", payload.platform or ""
    )
    return PreviewResponse(
        insight_id=insight.id,
        status=insight.status,
        message="Preview saved successfully",
    )


@router.post("/confirm", response_model=ConfirmResponse)
def confirm_publish(
    payload: PublishConfirmation, insights: InsightService = Depends(get_insight_service)
):
    """Callback reporting whether a publish attempt went live."""
    insight = insights.confirm_publish(
        payload.insight_id or "",
        payload.status or "",
        post_url=payload.post_url,
        error=payload.error,
    )
    if insight.status == InsightStatus.PUBLISHED.value:
        return ConfirmResponse(
            success=True,
            insight_id=insight.id,
            status=insight.status,
            published_url=insight.published_url,
            message="Insight published successfully",
        )
    return ConfirmResponse(
        success=False,
        insight_id=insight.id,
        status=insight.status,
        error=payload.error or "Publish failed",
        message="Insight publish failed, reverted to draft",
    )


@router.get("/{insight_id}", response_model=InsightOut)
def get_insight(insight_id: str, insights: InsightService = Depends(get_insight_service)):
    return InsightOut.model_validate(insights.get(insight_id))


@router.patch("/{insight_id}", response_model=InsightResponse)
def update_insight(
    insight_id: str,
    payload: InsightUpdate,
    insights: InsightService = Depends(get_insight_service),
):
    insight = insights.update(insight_id, core_insight=payload.core_insight, preview=payload.preview)
    return InsightResponse(insight=InsightOut.model_validate(insight))


@router.delete("/{insight_id}", response_model=SuccessResponse)
def delete_insight(insight_id: str, insights: InsightService = Depends(get_insight_service)):
    insights.delete(insight_id)
    return SuccessResponse()


@router.post("/{insight_id}/format", response_model=InsightResponse)
def format_insight(
    insight_id: str,
    payload: FormatRequest | None = None,
    insights: InsightService = Depends(get_insight_service),
):
    payload = payload or FormatRequest()
    outcome = insights.format(insight_id, platform=payload.platform, tone=payload.tone)
    message = "Preview received" if outcome.preview_received else "Format request sent"
    return InsightResponse(insight=InsightOut.model_validate(outcome.insight), message=message)


@router.post("/{insight_id}/publish", response_model=InsightResponse)
def publish_insight(
    insight_id: str,
    payload: PublishRequest | None = None,
    insights: InsightService = Depends(get_insight_service),
):
    payload = payload or PublishRequest()
    insight = insights.publish(insight_id, platform=payload.platform)
    if insight.status == InsightStatus.PUBLISHED.value:
        message = "Insight published"
    elif insight.status == InsightStatus.DRAFT.value:
        message = "Publish failed, reverted to draft"
    else:
        message = "Publish request sent"
    return InsightResponse(insight=InsightOut.model_validate(insight), message=message)
