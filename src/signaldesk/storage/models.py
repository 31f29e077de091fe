"""SQLModel database models."""

# No ``from __future__ import annotations`` here: SQLModel resolves
# relationship annotations at class creation time.

import json
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, Relationship, SQLModel


def new_id() -> str:
    return uuid.uuid4().hex


def parse_tags(tags_json: str | None) -> list[str]:
    """Decode a stored tag array; anything malformed reads as no tags."""
    try:
        parsed = json.loads(tags_json or "[]")
    except (TypeError, ValueError):
        return []
    if not isinstance(parsed, list):
        return []
    return [str(t) for t in parsed if t is not None]


def serialize_tags(tags: list[str] | None) -> str:
    return json.dumps([str(t) for t in (tags or [])])


class InsightSignalLink(SQLModel, table=True):
    """Many-to-many link between insights and their contributing signals."""

    insight_id: str = Field(foreign_key="insight.id", primary_key=True, ondelete="CASCADE")
    signal_id: str = Field(foreign_key="signal.id", primary_key=True, ondelete="CASCADE")


class Signal(SQLModel, table=True):
    """A captured unit of raw information."""

    id: str = Field(default_factory=new_id, primary_key=True)
    title: str
    content: str = ""  # empty only while a placeholder awaits its callback
    summary: str | None = None
    source: str | None = None
    source_url: str | None = Field(default=None, index=True)
    raw_content: str | None = None
    tags_json: str = "[]"
    status: str = Field(default="unread", index=True)
    created_at: datetime = Field(default_factory=datetime.now, index=True)
    updated_at: datetime = Field(default_factory=datetime.now)

    highlights: list["Highlight"] = Relationship(
        back_populates="signal",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Highlight.created_at"},
    )
    thoughts: list["Thought"] = Relationship(
        back_populates="signal",
        sa_relationship_kwargs={"order_by": "Thought.created_at.desc()"},
    )
    insights: list["Insight"] = Relationship(back_populates="signals", link_model=InsightSignalLink)

    @property
    def tags(self) -> list[str]:
        return parse_tags(self.tags_json)

    def set_tags(self, tags: list[str] | None) -> None:
        self.tags_json = serialize_tags(tags)


class Highlight(SQLModel, table=True):
    """An excerpt of a signal's content selected during review."""

    id: str = Field(default_factory=new_id, primary_key=True)
    text: str
    note: str | None = None
    start_pos: int | None = None
    end_pos: int | None = None
    signal_id: str = Field(foreign_key="signal.id", index=True, ondelete="CASCADE")
    created_at: datetime = Field(default_factory=datetime.now)

    signal: Optional["Signal"] = Relationship(back_populates="highlights")


class Thought(SQLModel, table=True):
    """A free-form reflection, attached to a signal, an insight, or nothing."""

    id: str = Field(default_factory=new_id, primary_key=True)
    content: str
    signal_id: str | None = Field(default=None, foreign_key="signal.id", index=True, ondelete="SET NULL")
    insight_id: str | None = Field(default=None, foreign_key="insight.id", index=True, ondelete="SET NULL")
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    signal: Optional["Signal"] = Relationship(back_populates="thoughts")
    insight: Optional["Insight"] = Relationship(back_populates="thoughts")


class Insight(SQLModel, table=True):
    """A synthesized claim destined for publication."""

    id: str = Field(default_factory=new_id, primary_key=True)
    core_insight: str
    status: str = Field(default="draft", index=True)
    preview: str | None = None
    preview_platform: str | None = None
    published_url: str | None = None
    published_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.now, index=True)
    updated_at: datetime = Field(default_factory=datetime.now)

    thoughts: list["Thought"] = Relationship(
        back_populates="insight",
        sa_relationship_kwargs={"order_by": "Thought.created_at"},
    )
    signals: list["Signal"] = Relationship(back_populates="insights", link_model=InsightSignalLink)


class WebhookConfig(SQLModel, table=True):
    """Target URL for one outbound job."""

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(unique=True, index=True)
    url: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
