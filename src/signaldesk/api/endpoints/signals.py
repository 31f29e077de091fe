"""
Signal API endpoints: inbox queries, review actions, edits and the
receive-signal callback.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from loguru import logger

from signaldesk.api.deps import get_app_settings, get_reconciler, get_signal_service
from signaldesk.api.schemas import (
    ReceiveResponse,
    ReviewRequest,
    SignalListResponse,
    SignalOut,
    SignalResponse,
    SignalUpdate,
    SuccessResponse,
)
from signaldesk.config import Settings
from signaldesk.lifecycle.reconciler import InboundReconciler
from signaldesk.lifecycle.signals import SignalService

router = APIRouter()


@router.get("", response_model=SignalListResponse)
def list_signals(
    status: str | None = None,
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    signals: SignalService = Depends(get_signal_service),
    settings: Settings = Depends(get_app_settings),
):
    limit = min(limit or settings.page_limit, settings.max_page_limit)
    rows, total = signals.list(status=status, limit=limit, offset=offset)
    return SignalListResponse(
        signals=[SignalOut.model_validate(s) for s in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.patch("", response_model=SignalResponse)
def review_signal(payload: ReviewRequest, signals: SignalService = Depends(get_signal_service)):
    """Review-screen action: mark reviewed (and auto-generate), archive, etc."""
    outcome = signals.set_status(payload.id, payload.status, thought=payload.thought)
    return SignalResponse(
        signal=SignalOut.model_validate(outcome.signal),
        generation_dispatched=(
            outcome.generation_dispatched if outcome.generation is not None else None
        ),
    )


@router.post("/receive", response_model=ReceiveResponse, status_code=201)
def receive_signal(
    payload: Any = Body(...),
    reconciler: InboundReconciler = Depends(get_reconciler),
):
    """Callback from the automation engine with an extracted signal."""
    outcome = reconciler.receive(payload)
    logger.info(f"Received signal {outcome.signal.id} (created={outcome.created})")
    return ReceiveResponse(
        signal_id=outcome.signal.id,
        created=outcome.created,
        message="Signal processed and stored",
    )


@router.get("/{signal_id}", response_model=SignalOut)
def get_signal(signal_id: str, signals: SignalService = Depends(get_signal_service)):
    return SignalOut.model_validate(signals.get(signal_id))


@router.patch("/{signal_id}", response_model=SignalResponse)
def update_signal(
    signal_id: str,
    payload: SignalUpdate,
    signals: SignalService = Depends(get_signal_service),
):
    # Reject a bad transition before any edit is committed
    status_change = bool(payload.status) and signals.check_status_change(signal_id, payload.status)
    changes = payload.model_dump(exclude_unset=True, exclude={"status"})
    signal = signals.update(signal_id, changes) if changes else signals.get(signal_id)
    generation = None
    if status_change:
        outcome = signals.set_status(signal_id, payload.status)
        signal = outcome.signal
        if outcome.generation is not None:
            generation = outcome.generation_dispatched
    return SignalResponse(signal=SignalOut.model_validate(signal), generation_dispatched=generation)


@router.delete("/{signal_id}", response_model=SuccessResponse)
def delete_signal(signal_id: str, signals: SignalService = Depends(get_signal_service)):
    signals.delete(signal_id)
    return SuccessResponse()
