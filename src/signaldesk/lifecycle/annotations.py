"""Highlights and thoughts attached during review and insight creation."""

from __future__ import annotations

from sqlmodel import Session, col, select

from signaldesk.errors import NotFoundError, ValidationError
from signaldesk.storage.models import Highlight, Insight, Signal, Thought


class AnnotationService:
    def __init__(self, session: Session) -> None:
        self._session = session

    # -- thoughts --------------------------------------------------------

    def add_thought(
        self,
        content: str,
        signal_id: str | None = None,
        insight_id: str | None = None,
    ) -> Thought:
        if not content or not content.strip():
            raise ValidationError("content is required", field="content")
        if signal_id and not self._session.get(Signal, signal_id):
            raise NotFoundError("Signal", signal_id)
        if insight_id and not self._session.get(Insight, insight_id):
            raise NotFoundError("Insight", insight_id)

        thought = Thought(content=content, signal_id=signal_id, insight_id=insight_id)
        self._session.add(thought)
        self._session.commit()
        self._session.refresh(thought)
        return thought

    def list_thoughts(
        self,
        signal_id: str | None = None,
        insight_id: str | None = None,
        unlinked: bool = False,
    ) -> list[Thought]:
        """Newest first. ``unlinked`` means not attached to any insight."""
        query = select(Thought)
        if signal_id:
            query = query.where(Thought.signal_id == signal_id)
        if unlinked:
            query = query.where(col(Thought.insight_id).is_(None))
        elif insight_id:
            query = query.where(Thought.insight_id == insight_id)
        return list(self._session.exec(query.order_by(col(Thought.created_at).desc())).all())

    def delete_thought(self, thought_id: str) -> None:
        thought = self._session.get(Thought, thought_id)
        if not thought:
            raise NotFoundError("Thought", thought_id)
        self._session.delete(thought)
        self._session.commit()

    # -- highlights ------------------------------------------------------

    def add_highlight(
        self,
        signal_id: str,
        text: str,
        note: str | None = None,
        start_pos: int | None = None,
        end_pos: int | None = None,
    ) -> Highlight:
        if not signal_id or not text:
            raise ValidationError("signalId and text are required")
        for name, pos in (("startPos", start_pos), ("endPos", end_pos)):
            if pos is not None and pos < 0:
                raise ValidationError("must not be negative", field=name)
        if start_pos is not None and end_pos is not None and start_pos > end_pos:
            raise ValidationError("startPos must not be after endPos")
        if not self._session.get(Signal, signal_id):
            raise NotFoundError("Signal", signal_id)

        highlight = Highlight(
            signal_id=signal_id, text=text, note=note, start_pos=start_pos, end_pos=end_pos
        )
        self._session.add(highlight)
        self._session.commit()
        self._session.refresh(highlight)
        return highlight

    def list_highlights(self, signal_id: str) -> list[Highlight]:
        return list(
            self._session.exec(
                select(Highlight)
                .where(Highlight.signal_id == signal_id)
                .order_by(col(Highlight.created_at))
            ).all()
        )

    def delete_highlight(self, highlight_id: str) -> None:
        highlight = self._session.get(Highlight, highlight_id)
        if not highlight:
            raise NotFoundError("Highlight", highlight_id)
        self._session.delete(highlight)
        self._session.commit()
