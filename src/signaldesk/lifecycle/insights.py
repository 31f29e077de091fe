"""Insight store operations and the format/publish state machine.

``formatting`` and ``publishing`` are in-flight states: they are written
before the outbound call so progress is visible while it runs, and a
compensating transition back to ``draft`` runs whenever the call does not
succeed. Preview and publish-confirmation callbacks from the engine are
authoritative and apply regardless of the current status.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import update
from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from signaldesk.content.formatting import build_format_context
from signaldesk.errors import NotFoundError, ValidationError
from signaldesk.lifecycle.states import (
    InsightStatus,
    WebhookJob,
    check_insight_transition,
    parse_insight_status,
)
from signaldesk.storage.models import Insight, Signal, Thought
from signaldesk.webhooks.dispatcher import DispatchResult, WebhookDispatcher

TONES = ("analytical", "reflective", "decisive")


@dataclass
class FormatOutcome:
    insight: Insight
    result: DispatchResult

    @property
    def preview_received(self) -> bool:
        return self.insight.status == InsightStatus.PREVIEWING.value


class InsightService:
    """Owns the insight lifecycle on top of one store session."""

    def __init__(
        self,
        session: Session,
        dispatcher: WebhookDispatcher | None = None,
        *,
        default_platform: str = "linkedin",
    ) -> None:
        self._session = session
        self._dispatcher = dispatcher
        self._default_platform = default_platform

    # -- queries ---------------------------------------------------------

    def get(self, insight_id: str) -> Insight:
        insight = self._session.exec(
            select(Insight).options(*self._eager()).where(Insight.id == insight_id)
        ).first()
        if not insight:
            raise NotFoundError("Insight", insight_id)
        return insight

    def list(self, status: str | None = None) -> list[Insight]:
        query = select(Insight).options(*self._eager())
        if status:
            query = query.where(Insight.status == parse_insight_status(status).value)
        return list(self._session.exec(query.order_by(col(Insight.created_at).desc())).all())

    # -- creation and plain edits ----------------------------------------

    def create(
        self,
        core_insight: str,
        thought_ids: list[str] | None = None,
        signal_ids: list[str] | None = None,
    ) -> Insight:
        """Create a draft, linking existing thoughts and contributing signals."""
        if not core_insight or not core_insight.strip():
            raise ValidationError("coreInsight is required", field="coreInsight")

        thoughts = self._fetch(Thought, thought_ids or [])
        signals = self._fetch(Signal, signal_ids or [])

        insight = Insight(core_insight=core_insight, status=InsightStatus.DRAFT.value)
        insight.signals = signals
        self._session.add(insight)
        for thought in thoughts:
            thought.insight_id = insight.id
            thought.updated_at = datetime.now()
            self._session.add(thought)
        self._session.commit()
        logger.info(
            f"Created insight {insight.id} ({len(thoughts)} thoughts, {len(signals)} signals)"
        )
        return self.get(insight.id)

    def update(
        self,
        insight_id: str,
        core_insight: str | None = None,
        preview: str | None = None,
    ) -> Insight:
        """Hand-edit the claim or the formatted preview, whatever the status."""
        insight = self.get(insight_id)
        if core_insight is not None:
            if not core_insight.strip():
                raise ValidationError("coreInsight cannot be empty", field="coreInsight")
            insight.core_insight = core_insight
        if preview is not None:
            insight.preview = preview if preview.strip() else None
        self._touch(insight)
        return insight

    def delete(self, insight_id: str) -> None:
        """Unlink the insight's thoughts, then remove it, in one transaction."""
        insight = self.get(insight_id)
        self._session.exec(
            update(Thought)
            .where(col(Thought.insight_id) == insight_id)
            .values(insight_id=None, updated_at=datetime.now())
        )
        self._session.delete(insight)
        self._session.commit()
        logger.info(f"Deleted insight {insight_id}")

    # -- outbound actions ------------------------------------------------

    def format(
        self, insight_id: str, platform: str | None = None, tone: str | None = None
    ) -> FormatOutcome:
        """Send the insight and its context to the format job.

        Raises the dispatch failure after reverting the insight to draft.
        """
        if tone is not None and tone not in TONES:
            raise ValidationError(f"must be one of: {', '.join(TONES)}", field="tone")
        insight = self.get(insight_id)
        platform = platform or insight.preview_platform or self._default_platform

        payload: dict[str, Any] = {
            "insightId": insight.id,
            "coreInsight": insight.core_insight,
            "context": build_format_context(insight.thoughts, insight.signals),
            "platform": platform,
        }
        if tone:
            payload["tone"] = tone

        with self._in_flight(insight, InsightStatus.FORMATTING):
            result = self._require_dispatcher().dispatch(WebhookJob.FORMAT, payload)
            result.raise_for_failure()

        # The engine may answer inline instead of calling back
        data = result.data or {}
        if data.get("preview"):
            insight = self.apply_preview(
                insight.id, str(data["preview"]), str(data.get("platform") or platform)
            )
        return FormatOutcome(insight, result)

    def publish(self, insight_id: str, platform: str | None = None) -> Insight:
        """Send the preview (or the bare claim) to the publish job.

        An inline ``{"status": "success", "postUrl": ...}`` reply publishes
        immediately; otherwise the insight waits in ``publishing`` for the
        confirmation callback.
        """
        insight = self.get(insight_id)
        preview = insight.preview if insight.preview and insight.preview.strip() else None
        content = preview or insight.core_insight
        if not content or not content.strip():
            raise ValidationError("Insight must have a preview or core insight before publishing")

        payload = {
            "insightId": insight.id,
            "formattedContent": content,
            "platform": platform or insight.preview_platform or self._default_platform,
        }
        with self._in_flight(insight, InsightStatus.PUBLISHING):
            result = self._require_dispatcher().dispatch(WebhookJob.PUBLISH, payload)
            result.raise_for_failure()

        data = result.data or {}
        reply_status = str(data.get("status", "")).lower()
        if reply_status == "success" and data.get("postUrl"):
            return self.confirm_publish(insight.id, "success", post_url=str(data["postUrl"]))
        if reply_status == "failed":
            return self.confirm_publish(insight.id, "failed", error=data.get("error"))
        return insight

    # -- engine callbacks ------------------------------------------------

    def apply_preview(self, insight_id: str, preview: str, platform: str) -> Insight:
        if not insight_id or not (preview and preview.strip()) or not platform:
            raise ValidationError(
                "Missing required fields: insightId, preview, and platform are required"
            )
        insight = self.get(insight_id)
        insight.preview = preview
        insight.preview_platform = platform
        insight.status = InsightStatus.PREVIEWING.value
        self._touch(insight)
        logger.info(f"Preview received for insight {insight_id} ({platform})")
        return insight

    def confirm_publish(
        self,
        insight_id: str,
        status: str,
        post_url: str | None = None,
        error: str | None = None,
    ) -> Insight:
        """Record the engine's publish result.

        Only ``success`` with a post URL publishes. Any other status, or a
        success without a URL, reverts to draft and discards the preview so
        it gets reformatted, whatever state the insight was in.
        """
        if not insight_id or not status:
            raise ValidationError("Missing required fields: insightId and status are required")
        insight = self.get(insight_id)
        if status.lower() == "success" and post_url:
            insight.status = InsightStatus.PUBLISHED.value
            insight.published_url = post_url
            insight.published_at = datetime.now()
            logger.info(f"Insight {insight_id} published at {post_url}")
        else:
            insight.status = InsightStatus.DRAFT.value
            insight.preview = None
            logger.warning(
                f"Publish failed for insight {insight_id} ({status}): {error or 'no reason given'}"
            )
        self._touch(insight)
        return insight

    # -- helpers ---------------------------------------------------------

    @contextmanager
    def _in_flight(self, insight: Insight, status: InsightStatus) -> Iterator[Insight]:
        """Hold ``insight`` in an in-flight status; revert to draft if the block fails."""
        check_insight_transition(insight.status, status)
        insight.status = status.value
        self._touch(insight)
        try:
            yield insight
        except BaseException:
            self._session.rollback()
            self._revert_to_draft(insight, status)
            raise

    def _revert_to_draft(self, insight: Insight, in_flight: InsightStatus) -> None:
        # Only undo our own mark; a callback may have moved the insight meanwhile
        self._session.exec(
            update(Insight)
            .where(col(Insight.id) == insight.id, col(Insight.status) == in_flight.value)
            .values(status=InsightStatus.DRAFT.value, updated_at=datetime.now())
        )
        self._session.commit()
        self._session.refresh(insight)
        logger.warning(f"Insight {insight.id} reverted from {in_flight.value} to draft")

    def _touch(self, insight: Insight) -> None:
        insight.updated_at = datetime.now()
        self._session.add(insight)
        self._session.commit()
        self._session.refresh(insight)

    def _fetch(self, model: type, ids: list[str]) -> list:
        if not ids:
            return []
        rows = list(self._session.exec(select(model).where(col(model.id).in_(ids))).all())
        missing = set(ids) - {r.id for r in rows}
        if missing:
            raise NotFoundError(model.__name__, ", ".join(sorted(missing)))
        return rows

    @staticmethod
    def _eager() -> list:
        return [
            selectinload(Insight.thoughts).selectinload(Thought.signal),
            selectinload(Insight.signals),
        ]

    def _require_dispatcher(self) -> WebhookDispatcher:
        if self._dispatcher is None:
            raise RuntimeError("InsightService was created without a dispatcher")
        return self._dispatcher
