"""Resolve inbound engine callbacks to a create-or-update on the signal store.

A capture that the engine processes asynchronously may have left a
``processing`` placeholder behind. When the callback names no signal, the
reconciler looks for a recent placeholder with the same correlation key
(``source_url`` by default) and fills it in rather than creating a
duplicate. Captures without a URL have no key and always create a new
signal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlmodel import Session, col, select

from signaldesk.config import Settings
from signaldesk.content.formatting import resolve_content, resolve_title
from signaldesk.errors import NotFoundError, ValidationError
from signaldesk.lifecycle.states import SignalStatus
from signaldesk.storage.models import Signal
from signaldesk.webhooks.normalizer import ExtractedSignal, normalize


@dataclass(frozen=True)
class PlaceholderPolicy:
    """How a callback is matched to a speculative placeholder."""

    window: timedelta = timedelta(minutes=10)
    match_field: str = "source_url"

    def __post_init__(self) -> None:
        if self.match_field not in Signal.model_fields:
            raise ValueError(f"Unknown signal field for placeholder matching: {self.match_field}")

    @classmethod
    def from_settings(cls, settings: Settings) -> PlaceholderPolicy:
        return cls(window=settings.dedup_window, match_field=settings.dedup_match_field)


@dataclass
class ReconcileOutcome:
    signal: Signal
    created: bool
    matched_placeholder: bool = False


class InboundReconciler:
    def __init__(
        self,
        session: Session,
        policy: PlaceholderPolicy | None = None,
        *,
        default_source: str = "n8n",
    ) -> None:
        self._session = session
        self._policy = policy or PlaceholderPolicy()
        self._default_source = default_source

    def receive(self, payload: Any, now: datetime | None = None) -> ReconcileOutcome:
        """Apply one receive-signal callback (flat, ``output``-nested or array-wrapped)."""
        data = ExtractedSignal.from_canonical(normalize(payload))
        if not data.has_identifying_content:
            raise ValidationError("Invalid payload: missing summary, key_insights or title")

        if data.signal_id:
            signal = self._session.get(Signal, data.signal_id)
            if not signal:
                raise NotFoundError("Signal", data.signal_id)
            return self._fill(signal, data, matched=False)

        placeholder = self.find_placeholder(data, now=now)
        if placeholder is not None:
            return self._fill(placeholder, data, matched=True)

        signal = Signal(
            title=resolve_title(data),
            content=resolve_content(data),
            summary=data.summary,
            source=data.source or self._default_source,
            source_url=data.source_url,
            raw_content=data.raw_content,
            status=SignalStatus.UNREAD.value,
        )
        signal.set_tags(data.topics)
        self._session.add(signal)
        self._session.commit()
        self._session.refresh(signal)
        logger.info(f"Created signal {signal.id} from callback")
        return ReconcileOutcome(signal, created=True)

    def find_placeholder(self, data: ExtractedSignal, now: datetime | None = None) -> Signal | None:
        """Newest ``processing`` signal inside the window sharing the match key."""
        key = self._match_value(data)
        if not key:
            return None
        cutoff = (now or datetime.now()) - self._policy.window
        column = getattr(Signal, self._policy.match_field)
        return self._session.exec(
            select(Signal)
            .where(
                Signal.status == SignalStatus.PROCESSING.value,
                col(Signal.created_at) >= cutoff,
                column == key,
            )
            .order_by(col(Signal.created_at).desc())
        ).first()

    def _match_value(self, data: ExtractedSignal) -> str | None:
        value = getattr(data, self._policy.match_field, None)
        return str(value) if value else None

    def _fill(self, signal: Signal, data: ExtractedSignal, *, matched: bool) -> ReconcileOutcome:
        if data.title or data.summary or not signal.title:
            signal.title = resolve_title(data)
        signal.content = resolve_content(data) or signal.content
        if data.summary:
            signal.summary = data.summary
        if data.source:
            signal.source = data.source
        elif not signal.source:
            signal.source = self._default_source
        if data.source_url:
            signal.source_url = data.source_url
        if data.raw_content:
            signal.raw_content = data.raw_content
        if data.topics is not None:
            signal.set_tags(data.topics)
        if signal.status == SignalStatus.PROCESSING.value:
            signal.status = SignalStatus.UNREAD.value
        signal.updated_at = datetime.now()

        self._session.add(signal)
        self._session.commit()
        self._session.refresh(signal)
        how = "placeholder" if matched else "explicit id"
        logger.info(f"Updated signal {signal.id} from callback ({how})")
        return ReconcileOutcome(signal, created=False, matched_placeholder=matched)
