"""Turn extracted engine data into signal titles and Markdown bodies."""

from __future__ import annotations

from dataclasses import dataclass

from signaldesk.content.templates import render
from signaldesk.storage.models import Signal, Thought
from signaldesk.webhooks.normalizer import ExtractedSignal

TITLE_MAX_LENGTH = 100
FALLBACK_TITLE = "Extracted Insight"


@dataclass
class Section:
    heading: str
    body: str | list[str]


def render_signal_markdown(data: ExtractedSignal) -> str:
    """Render Summary, Key Insights, Actionable Takeaways and Sentiment sections.

    Sections always appear in that order; missing or empty fields are skipped.
    """
    sections: list[Section] = []
    if data.summary:
        sections.append(Section("Summary", data.summary))
    if data.key_insights:
        sections.append(Section("Key Insights", data.key_insights))
    if data.actionable_takeaways:
        sections.append(Section("Actionable Takeaways", data.actionable_takeaways))
    if data.sentiment:
        sections.append(Section("Sentiment", data.sentiment))
    if not sections:
        return ""
    return render("signal_content.md.j2", sections=sections).strip()


def resolve_content(data: ExtractedSignal) -> str:
    """Explicit ``content`` wins; otherwise synthesize Markdown."""
    return data.content or render_signal_markdown(data)


def resolve_title(data: ExtractedSignal, explicit: str | None = None) -> str:
    """Explicit title, then the start of the summary, then a fixed fallback."""
    title = explicit or data.title
    if title and title.strip():
        return title.strip()
    if data.summary:
        return data.summary[:TITLE_MAX_LENGTH]
    return FALLBACK_TITLE


def build_format_context(thoughts: list[Thought], signals: list[Signal]) -> list[str]:
    """Linked thoughts first, then each linked signal's title and body."""
    context = [t.content for t in thoughts]
    context.extend(f"[Signal: {s.title}] {s.content}" for s in signals)
    return context
