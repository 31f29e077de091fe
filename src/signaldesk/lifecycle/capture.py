"""Capture raw input by sending it to the ingest job."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlmodel import Session

from signaldesk.content.formatting import resolve_content, resolve_title
from signaldesk.errors import ValidationError
from signaldesk.lifecycle.states import SignalStatus, WebhookJob
from signaldesk.storage.models import Signal
from signaldesk.webhooks.dispatcher import WebhookDispatcher
from signaldesk.webhooks.normalizer import ExtractedSignal

INPUT_TYPES = ("text", "url", "youtube", "file")


@dataclass
class CaptureRequest:
    input_type: str
    content: str | None = None
    url: str | None = None
    title: str | None = None

    def validate(self) -> None:
        if not self.input_type:
            raise ValidationError("inputType is required (text, url, youtube, file)")
        if self.input_type not in INPUT_TYPES:
            raise ValidationError(f"must be one of: {', '.join(INPUT_TYPES)}", field="inputType")
        if self.input_type in ("text", "file") and not self.content:
            raise ValidationError("content is required for text and file types")
        if self.input_type in ("url", "youtube") and not self.url:
            raise ValidationError("url is required for url and youtube types")

    def payload(self) -> dict[str, str]:
        payload = {"inputType": self.input_type}
        if self.content:
            payload["content"] = self.content
        if self.url:
            payload["url"] = self.url
        return payload


@dataclass
class CaptureOutcome:
    signal: Signal | None
    synchronous: bool
    data: ExtractedSignal | None = None


class CaptureService:
    def __init__(
        self,
        session: Session,
        dispatcher: WebhookDispatcher,
        *,
        placeholders: bool = True,
    ) -> None:
        self._session = session
        self._dispatcher = dispatcher
        self._placeholders = placeholders

    def ingest(self, request: CaptureRequest) -> CaptureOutcome:
        """Dispatch the capture; store a signal only once the engine accepted it.

        A synchronous reply becomes an ``unread`` signal straight away. An
        asynchronous one leaves a ``processing`` placeholder (URL captures
        only) for the receive-signal callback to fill in.
        """
        request.validate()
        result = self._dispatcher.dispatch(WebhookJob.INGEST, request.payload())
        result.raise_for_failure()

        if result.data:
            data = ExtractedSignal.from_canonical(result.data)
            signal = Signal(
                title=resolve_title(data, explicit=request.title),
                content=resolve_content(data),
                summary=data.summary,
                source=request.input_type,
                source_url=request.url or data.source_url,
                raw_content=request.content or data.raw_content,
                status=SignalStatus.UNREAD.value,
            )
            signal.set_tags(data.topics)
            self._save(signal)
            logger.info(f"Signal {signal.id} stored from synchronous ingest reply")
            return CaptureOutcome(signal, synchronous=True, data=data)

        if self._placeholders and request.url:
            placeholder = Signal(
                title=request.title or request.url,
                content="",
                source=request.input_type,
                source_url=request.url,
                status=SignalStatus.PROCESSING.value,
            )
            self._save(placeholder)
            logger.info(f"Placeholder {placeholder.id} awaiting callback for {request.url}")
            return CaptureOutcome(placeholder, synchronous=False)

        return CaptureOutcome(None, synchronous=False)

    def _save(self, signal: Signal) -> None:
        self._session.add(signal)
        self._session.commit()
        self._session.refresh(signal)
