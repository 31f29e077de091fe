"""Collapse the reply shapes the automation engine produces into one record.

Observed shapes:

1. a flat object: ``{"summary": ...}``
2. an object wrapped in ``output``: ``{"output": {"summary": ...}, "sourceUrl": ...}``
3. a one-element array holding either of the above: ``[{"output": {...}}]``

Nothing past this module sees shapes 2 or 3.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize(raw: Any) -> dict[str, Any]:
    """Return the canonical flat record for any of the three reply shapes.

    When ``output`` is an object its fields win over the wrapper's on
    collision; the wrapper still contributes metadata such as ``source`` or
    ``sourceUrl`` that the inner payload may lack.
    """
    if isinstance(raw, list):
        if not raw:
            return {}
        if len(raw) > 1:
            logger.warning(f"Expected a single-element reply, got {len(raw)}; using the first")
        raw = raw[0]

    if not isinstance(raw, dict):
        logger.warning(f"Ignoring non-object reply of type {type(raw).__name__}")
        return {}

    inner = raw.get("output")
    if isinstance(inner, dict):
        outer = {k: v for k, v in raw.items() if k != "output"}
        return {**outer, **inner}
    return dict(raw)


def _as_list(value: Any) -> list[str] | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return [str(value)]


class ExtractedSignal(BaseModel):
    """Canonical ingest reply: what the engine extracted from one capture."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    signal_id: str | None = Field(default=None, alias="signalId")
    title: str | None = None
    summary: str | None = None
    content: str | None = None
    key_insights: list[str] | None = Field(default=None, alias="keyInsights")
    actionable_takeaways: list[str] | None = Field(default=None, alias="actionableTakeaways")
    topics: list[str] | None = None
    sentiment: str | None = None
    source: str | None = None
    source_url: str | None = Field(default=None, alias="sourceUrl")
    raw_content: str | None = Field(default=None, alias="rawContent")

    @field_validator("key_insights", "actionable_takeaways", "topics", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any) -> list[str] | None:
        return _as_list(v)

    @field_validator(
        "signal_id", "title", "summary", "content", "sentiment", "source", "source_url",
        "raw_content", mode="before",
    )
    @classmethod
    def _blank_is_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        if v is not None and not isinstance(v, str):
            return str(v)
        return v

    @classmethod
    def from_canonical(cls, data: dict[str, Any]) -> ExtractedSignal:
        if "id" in data and "signalId" not in data and "signal_id" not in data:
            data = {**data, "signalId": data["id"]}
        return cls.model_validate(data)

    @property
    def has_identifying_content(self) -> bool:
        return bool(self.summary or self.key_insights or self.title)
