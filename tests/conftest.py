"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import httpx
import pytest
from sqlmodel import Session

from signaldesk.config import Settings
from signaldesk.lifecycle.states import WebhookJob
from signaldesk.storage.database import dispose_engines, get_session
from signaldesk.storage.models import Insight, Signal
from signaldesk.webhooks.dispatcher import WebhookDispatcher
from signaldesk.webhooks.registry import WebhookRegistry

ENGINE_BASE_URL = "https://engine.test/webhook"


class EngineStub:
    """Stands in for the automation engine behind ``httpx.MockTransport``.

    Requests are routed by the last path segment (the job name). Jobs with
    no configured reply answer 200 with an empty body (asynchronous).
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self._replies: dict[str, Any] = {}

    def reply(
        self,
        job: str,
        *,
        status: int = 200,
        json_body: Any = None,
        text: str | None = None,
    ) -> None:
        if json_body is not None:
            self._replies[job] = httpx.Response(status, json=json_body)
        else:
            self._replies[job] = httpx.Response(status, text=text or "")

    def fail(self, job: str, exc_type: type[httpx.TransportError], message: str = "boom") -> None:
        self._replies[job] = (exc_type, message)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        job = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        self.calls.append((job, json.loads(request.content or b"null")))
        reply = self._replies.get(job)
        if reply is None:
            return httpx.Response(200)
        if isinstance(reply, tuple):
            exc_type, message = reply
            raise exc_type(message, request=request)
        return reply

    def payloads(self, job: str) -> list[Any]:
        return [payload for name, payload in self.calls if name == job]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    return Settings(
        db_path=tmp_path / "test.db",
        dispatch_timeout_seconds=5.0,
        dispatch_connect_attempts=3,
        dispatch_retry_wait_seconds=0.0,
        log_level="DEBUG",
    )


@pytest.fixture
def session(settings: Settings) -> Iterator[Session]:
    with get_session(settings.db_path) as s:
        yield s
    dispose_engines()


@pytest.fixture
def engine() -> EngineStub:
    return EngineStub()


@pytest.fixture
def registry(session: Session) -> WebhookRegistry:
    """Registry with every job pointed at the engine stub."""
    reg = WebhookRegistry(session)
    for job in WebhookJob:
        reg.upsert(job.value, f"{ENGINE_BASE_URL}/{job.value}")
    return reg


@pytest.fixture
def dispatcher(registry: WebhookRegistry, engine: EngineStub, settings: Settings) -> WebhookDispatcher:
    return WebhookDispatcher.from_settings(registry, settings, client=engine.client())


def make_signal(session: Session, **fields: Any) -> Signal:
    """Insert a signal with sensible defaults."""
    tags = fields.pop("tags", None)
    fields.setdefault("title", "A signal")
    fields.setdefault("content", "Body text")
    signal = Signal(**fields)
    if tags is not None:
        signal.set_tags(tags)
    session.add(signal)
    session.commit()
    session.refresh(signal)
    return signal


def make_insight(session: Session, **fields: Any) -> Insight:
    fields.setdefault("core_insight", "Small teams ship faster")
    insight = Insight(**fields)
    session.add(insight)
    session.commit()
    session.refresh(insight)
    return insight


def minutes_ago(minutes: float, now: datetime | None = None) -> datetime:
    return (now or datetime.now()) - timedelta(minutes=minutes)
