"""
Capture endpoint: send text, files, URLs and videos to the ingest workflow.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from signaldesk.api.deps import get_capture_service
from signaldesk.api.schemas import IngestRequest, IngestResponse
from signaldesk.lifecycle.capture import CaptureRequest, CaptureService

router = APIRouter()


@router.post("", response_model=IngestResponse, status_code=201)
def ingest(payload: IngestRequest, capture: CaptureService = Depends(get_capture_service)):
    outcome = capture.ingest(
        CaptureRequest(
            input_type=payload.input_type or "",
            content=payload.content,
            url=payload.url,
            title=payload.title,
        )
    )
    if outcome.synchronous:
        return IngestResponse(
            message="Signal processed and stored",
            signal_id=outcome.signal.id,
            insights=outcome.data.key_insights if outcome.data else None,
        )

    # Accepted; the signal arrives later through the receive-signal callback
    body = IngestResponse(
        message="Content sent for processing",
        signal_id=outcome.signal.id if outcome.signal else None,
    )
    return JSONResponse(status_code=202, content=body.model_dump(by_alias=True))
