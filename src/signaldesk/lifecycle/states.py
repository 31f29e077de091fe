"""Status enums and allowed transitions for signals and insights."""

from __future__ import annotations

from enum import Enum

from signaldesk.errors import InvalidTransitionError, ValidationError


class SignalStatus(str, Enum):
    UNREAD = "unread"
    PROCESSING = "processing"  # placeholder awaiting a callback
    REVIEWED = "reviewed"
    PROCESSED = "processed"  # already sent to generation
    CLUSTERED = "clustered"
    ARCHIVED = "archived"


class InsightStatus(str, Enum):
    DRAFT = "draft"
    FORMATTING = "formatting"
    PREVIEWING = "previewing"
    PUBLISHING = "publishing"
    PUBLISHED = "published"


class WebhookJob(str, Enum):
    INGEST = "ingest"
    CLUSTER = "cluster"
    GENERATE = "generate"
    FORMAT = "format"
    PUBLISH = "publish"


SIGNAL_TRANSITIONS: dict[SignalStatus, frozenset[SignalStatus]] = {
    SignalStatus.PROCESSING: frozenset({SignalStatus.UNREAD, SignalStatus.ARCHIVED}),
    SignalStatus.UNREAD: frozenset({SignalStatus.REVIEWED, SignalStatus.ARCHIVED}),
    # reviewed -> reviewed lets a failed auto-generate be retried
    SignalStatus.REVIEWED: frozenset(
        {
            SignalStatus.REVIEWED,
            SignalStatus.PROCESSED,
            SignalStatus.CLUSTERED,
            SignalStatus.ARCHIVED,
        }
    ),
    SignalStatus.PROCESSED: frozenset({SignalStatus.ARCHIVED}),
    SignalStatus.CLUSTERED: frozenset({SignalStatus.ARCHIVED}),
    SignalStatus.ARCHIVED: frozenset(),
}

# User-initiated insight transitions. Callbacks from the automation engine
# (preview, publish confirmation) are authoritative and bypass this table.
INSIGHT_TRANSITIONS: dict[InsightStatus, frozenset[InsightStatus]] = {
    InsightStatus.DRAFT: frozenset({InsightStatus.FORMATTING, InsightStatus.PUBLISHING}),
    InsightStatus.FORMATTING: frozenset({InsightStatus.DRAFT, InsightStatus.PREVIEWING}),
    InsightStatus.PREVIEWING: frozenset(
        {InsightStatus.DRAFT, InsightStatus.FORMATTING, InsightStatus.PUBLISHING}
    ),
    InsightStatus.PUBLISHING: frozenset({InsightStatus.DRAFT, InsightStatus.PUBLISHED}),
    InsightStatus.PUBLISHED: frozenset(),
}


def parse_signal_status(value: str) -> SignalStatus:
    try:
        return SignalStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in SignalStatus)
        raise ValidationError(f"must be one of: {allowed}", field="status") from None


def parse_insight_status(value: str) -> InsightStatus:
    try:
        return InsightStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in InsightStatus)
        raise ValidationError(f"must be one of: {allowed}", field="status") from None


def check_signal_transition(current: str, target: SignalStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if target not in SIGNAL_TRANSITIONS[SignalStatus(current)]:
        raise InvalidTransitionError("signal", current, target.value)


def check_insight_transition(current: str, target: InsightStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if target not in INSIGHT_TRANSITIONS[InsightStatus(current)]:
        raise InvalidTransitionError("insight", current, target.value)
