"""Signal store operations and review/cluster/generate transitions.

Store mutations that record work as sent (``processed``, ``clustered``)
happen strictly after the engine accepted the dispatch, never before.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from signaldesk.errors import NotFoundError, ValidationError
from signaldesk.lifecycle.states import (
    SignalStatus,
    WebhookJob,
    check_signal_transition,
    parse_signal_status,
)
from signaldesk.storage.models import Signal, Thought
from signaldesk.webhooks.dispatcher import DispatchResult, WebhookDispatcher

EDITABLE_FIELDS = ("title", "content", "summary", "source", "source_url", "raw_content")


def signal_payload(signal: Signal, *, include_thoughts: bool = False) -> dict[str, Any]:
    """JSON-ready representation sent to the engine for cluster/generate jobs."""
    payload: dict[str, Any] = {
        "id": signal.id,
        "title": signal.title,
        "content": signal.content,
        "summary": signal.summary,
        "source": signal.source,
        "sourceUrl": signal.source_url,
        "tags": signal.tags,
        "status": signal.status,
        "createdAt": signal.created_at.isoformat(),
        "updatedAt": signal.updated_at.isoformat(),
    }
    if include_thoughts:
        payload["thoughts"] = [
            {"id": t.id, "content": t.content, "createdAt": t.created_at.isoformat()}
            for t in signal.thoughts
        ]
    return payload


@dataclass
class ReviewOutcome:
    signal: Signal
    generation: DispatchResult | None = None

    @property
    def generation_dispatched(self) -> bool:
        return bool(self.generation and self.generation.success)


@dataclass
class BatchOutcome:
    count: int
    signal_ids: list[str] = field(default_factory=list)


class SignalService:
    """Owns the signal lifecycle on top of one store session."""

    def __init__(self, session: Session, dispatcher: WebhookDispatcher | None = None) -> None:
        self._session = session
        self._dispatcher = dispatcher

    # -- queries ---------------------------------------------------------

    def get(self, signal_id: str) -> Signal:
        signal = self._session.get(Signal, signal_id)
        if not signal:
            raise NotFoundError("Signal", signal_id)
        return signal

    def list(
        self, status: str | None = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[Signal], int]:
        """Return one page of signals, newest first, and the total match count."""
        query = select(Signal).options(
            selectinload(Signal.highlights), selectinload(Signal.thoughts)
        )
        count_query = select(func.count()).select_from(Signal)
        if status:
            status_value = parse_signal_status(status).value
            query = query.where(Signal.status == status_value)
            count_query = count_query.where(Signal.status == status_value)

        signals = self._session.exec(
            query.order_by(col(Signal.created_at).desc()).offset(offset).limit(limit)
        ).all()
        total = self._session.exec(count_query).one()
        return list(signals), int(total)

    # -- edits -----------------------------------------------------------

    def update(self, signal_id: str, changes: dict[str, Any]) -> Signal:
        """Apply plain field edits; status changes go through ``set_status``."""
        signal = self.get(signal_id)
        if "title" in changes and not str(changes["title"] or "").strip():
            raise ValidationError("title cannot be empty", field="title")
        for name in EDITABLE_FIELDS:
            if name in changes:
                setattr(signal, name, changes[name])
        if "tags" in changes:
            signal.set_tags(changes["tags"])
        if signal.content is None:
            signal.content = ""
        signal.updated_at = datetime.now()
        self._session.add(signal)
        self._session.commit()
        self._session.refresh(signal)
        return signal

    def check_status_change(self, signal_id: str, status: str) -> bool:
        """Validate a status change without applying it.

        Returns False when the signal is already in ``status``.
        """
        signal = self.get(signal_id)
        target = parse_signal_status(status)
        if target.value == signal.status:
            return False
        check_signal_transition(signal.status, target)
        return True

    def set_status(self, signal_id: str, status: str, thought: str | None = None) -> ReviewOutcome:
        """Route a review-screen status change to the matching action."""
        target = parse_signal_status(status)
        if target is SignalStatus.REVIEWED:
            return self.mark_reviewed(signal_id, thought=thought)

        signal = self.get(signal_id)
        self._transition(signal, target)
        if thought:
            self._session.add(Thought(content=thought, signal_id=signal.id))
        self._session.add(signal)
        self._session.commit()
        self._session.refresh(signal)
        return ReviewOutcome(signal)

    def archive(self, signal_id: str) -> Signal:
        return self.set_status(signal_id, SignalStatus.ARCHIVED.value).signal

    def delete(self, signal_id: str) -> None:
        """Delete a signal and its highlights; its thoughts survive unlinked."""
        signal = self.get(signal_id)
        self._session.exec(
            update(Thought).where(col(Thought.signal_id) == signal_id).values(signal_id=None)
        )
        self._session.delete(signal)
        self._session.commit()
        logger.info(f"Deleted signal {signal_id}")

    # -- review ----------------------------------------------------------

    def mark_reviewed(self, signal_id: str, thought: str | None = None) -> ReviewOutcome:
        """Mark reviewed, then hand the signal to the generate job.

        A failed generate dispatch is logged and leaves the signal in
        ``reviewed`` so it can be re-triggered; the review itself still
        succeeds.
        """
        signal = self.get(signal_id)
        self._transition(signal, SignalStatus.REVIEWED)
        if thought:
            self._session.add(Thought(content=thought, signal_id=signal.id))
        self._session.add(signal)
        self._session.commit()
        self._session.refresh(signal)

        if self._dispatcher is None:
            return ReviewOutcome(signal)

        result = self._dispatcher.dispatch(
            WebhookJob.GENERATE, {"signals": [signal_payload(signal)]}
        )
        if result.success:
            self._advance_batch([signal.id], SignalStatus.REVIEWED, SignalStatus.PROCESSED)
            self._session.commit()
            self._session.refresh(signal)
        else:
            logger.warning(f"Auto-generate for signal {signal.id} failed: {result.error}")
        return ReviewOutcome(signal, result)

    # -- batch jobs ------------------------------------------------------

    def cluster(self) -> BatchOutcome:
        """Send every reviewed signal to the cluster job, then mark them clustered.

        Raises the dispatch failure without touching any signal.
        """
        signals = self._session.exec(
            select(Signal)
            .options(selectinload(Signal.thoughts))
            .where(Signal.status == SignalStatus.REVIEWED.value)
            .order_by(col(Signal.created_at))
        ).all()
        if not signals:
            logger.info("No reviewed signals to cluster")
            return BatchOutcome(0)

        payload = {"signals": [signal_payload(s, include_thoughts=True) for s in signals]}
        self._require_dispatcher().dispatch(WebhookJob.CLUSTER, payload).raise_for_failure()

        ids = [s.id for s in signals]
        count = self._advance_batch(ids, SignalStatus.REVIEWED, SignalStatus.CLUSTERED)
        self._session.commit()
        if count != len(ids):
            logger.warning(f"Clustered {count} of {len(ids)} signals; others changed concurrently")
        logger.info(f"Clustering triggered for {count} signals")
        return BatchOutcome(count, ids)

    def generate(self, signal_ids: list[str]) -> BatchOutcome:
        """Send the given signals to the generate job.

        Reviewed signals among them are marked processed once the engine
        accepted the call.
        """
        if not signal_ids:
            raise ValidationError("signalIds array is required")
        signals = self._session.exec(
            select(Signal).where(col(Signal.id).in_(signal_ids)).order_by(col(Signal.created_at))
        ).all()
        if not signals:
            raise NotFoundError("Signal", ", ".join(signal_ids))

        payload = {"signals": [signal_payload(s) for s in signals]}
        self._require_dispatcher().dispatch(WebhookJob.GENERATE, payload).raise_for_failure()

        ids = [s.id for s in signals]
        self._advance_batch(ids, SignalStatus.REVIEWED, SignalStatus.PROCESSED)
        self._session.commit()
        return BatchOutcome(len(ids), ids)

    # -- helpers ---------------------------------------------------------

    def _transition(self, signal: Signal, target: SignalStatus) -> None:
        check_signal_transition(signal.status, target)
        signal.status = target.value
        signal.updated_at = datetime.now()

    def _advance_batch(
        self, ids: list[str], current: SignalStatus, target: SignalStatus
    ) -> int:
        """Move the listed signals still in ``current`` to ``target``; return the count."""
        result = self._session.exec(
            update(Signal)
            .where(col(Signal.id).in_(ids), col(Signal.status) == current.value)
            .values(status=target.value, updated_at=datetime.now())
        )
        return result.rowcount

    def _require_dispatcher(self) -> WebhookDispatcher:
        if self._dispatcher is None:
            raise RuntimeError("SignalService was created without a dispatcher")
        return self._dispatcher
