"""Revert records stuck in transient states after their dispatch window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy import update
from sqlmodel import Session, col

from signaldesk.lifecycle.states import InsightStatus, SignalStatus
from signaldesk.storage.models import Insight, Signal


@dataclass
class SweepReport:
    insights_reverted: int
    placeholders_archived: int


def sweep_stale(
    session: Session,
    *,
    stale_after: timedelta,
    placeholder_window: timedelta,
    now: datetime | None = None,
) -> SweepReport:
    """Revert stuck formatting/publishing insights and archive orphaned placeholders.

    An insight still in flight after ``stale_after`` lost its callback (or
    the process died mid-dispatch) and goes back to draft. A placeholder
    older than ``placeholder_window`` can no longer be matched by a callback.
    """
    now = now or datetime.now()
    in_flight = [InsightStatus.FORMATTING.value, InsightStatus.PUBLISHING.value]

    reverted = session.exec(
        update(Insight)
        .where(col(Insight.status).in_(in_flight), col(Insight.updated_at) < now - stale_after)
        .values(status=InsightStatus.DRAFT.value, updated_at=now)
    ).rowcount
    archived = session.exec(
        update(Signal)
        .where(
            col(Signal.status) == SignalStatus.PROCESSING.value,
            col(Signal.created_at) < now - placeholder_window,
        )
        .values(status=SignalStatus.ARCHIVED.value, updated_at=now)
    ).rowcount
    session.commit()

    if reverted or archived:
        logger.info(f"Sweep reverted {reverted} insights, archived {archived} placeholders")
    return SweepReport(insights_reverted=reverted, placeholders_archived=archived)
