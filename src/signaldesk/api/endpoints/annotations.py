"""
Thought and highlight endpoints.
"""

from fastapi import APIRouter, Depends, Query

from signaldesk.api.deps import get_annotations
from signaldesk.api.schemas import (
    HighlightCreate,
    HighlightListResponse,
    HighlightOut,
    HighlightResponse,
    SuccessResponse,
    ThoughtCreate,
    ThoughtListResponse,
    ThoughtOut,
    ThoughtResponse,
)
from signaldesk.errors import ValidationError
from signaldesk.lifecycle.annotations import AnnotationService

thoughts_router = APIRouter()
highlights_router = APIRouter()


@thoughts_router.post("", response_model=ThoughtResponse, status_code=201)
def create_thought(payload: ThoughtCreate, annotations: AnnotationService = Depends(get_annotations)):
    thought = annotations.add_thought(
        payload.content or "", signal_id=payload.signal_id, insight_id=payload.insight_id
    )
    return ThoughtResponse(thought=ThoughtOut.model_validate(thought))


@thoughts_router.get("", response_model=ThoughtListResponse)
def list_thoughts(
    signal_id: str | None = Query(None, alias="signalId"),
    insight_id: str | None = Query(None, alias="insightId"),
    unlinked: bool = False,
    annotations: AnnotationService = Depends(get_annotations),
):
    rows = annotations.list_thoughts(signal_id=signal_id, insight_id=insight_id, unlinked=unlinked)
    return ThoughtListResponse(thoughts=[ThoughtOut.model_validate(t) for t in rows])


@thoughts_router.delete("/{thought_id}", response_model=SuccessResponse)
def delete_thought(thought_id: str, annotations: AnnotationService = Depends(get_annotations)):
    annotations.delete_thought(thought_id)
    return SuccessResponse()


@highlights_router.post("", response_model=HighlightResponse, status_code=201)
def create_highlight(
    payload: HighlightCreate, annotations: AnnotationService = Depends(get_annotations)
):
    highlight = annotations.add_highlight(
        payload.signal_id or "",
        payload.text or "",
        note=payload.note,
        start_pos=payload.start_pos,
        end_pos=payload.end_pos,
    )
    return HighlightResponse(highlight=HighlightOut.model_validate(highlight))


@highlights_router.get("", response_model=HighlightListResponse)
def list_highlights(
    signal_id: str | None = Query(None, alias="signalId"),
    annotations: AnnotationService = Depends(get_annotations),
):
    if not signal_id:
        raise ValidationError("signalId is required", field="signalId")
    rows = annotations.list_highlights(signal_id)
    return HighlightListResponse(highlights=[HighlightOut.model_validate(h) for h in rows])


@highlights_router.delete("/{highlight_id}", response_model=SuccessResponse)
def delete_highlight(highlight_id: str, annotations: AnnotationService = Depends(get_annotations)):
    annotations.delete_highlight(highlight_id)
    return SuccessResponse()
