"""Tests for outbound webhook dispatch against a stubbed engine."""

from __future__ import annotations

import time

import httpx
import pytest
from sqlmodel import Session

from signaldesk.errors import (
    DispatchHttpError,
    DispatchNetworkError,
    DispatchTimeoutError,
    NotConfiguredError,
)
from signaldesk.lifecycle.states import WebhookJob
from signaldesk.webhooks.dispatcher import WebhookDispatcher
from signaldesk.webhooks.registry import WebhookRegistry
from tests.conftest import EngineStub


def test_not_configured_makes_no_request(session: Session, engine: EngineStub) -> None:
    dispatcher = WebhookDispatcher(WebhookRegistry(session), engine.client())
    result = dispatcher.dispatch(WebhookJob.CLUSTER, {"signals": []})

    assert not result.success
    assert isinstance(result.failure, NotConfiguredError)
    assert result.error == "Cluster webhook URL not configured. Please set it up in Settings."
    assert engine.calls == []


def test_posts_json_payload(dispatcher: WebhookDispatcher, engine: EngineStub) -> None:
    dispatcher.dispatch(WebhookJob.INGEST, {"inputType": "text", "content": "hello"})
    assert engine.calls == [("ingest", {"inputType": "text", "content": "hello"})]


def test_empty_body_is_success_without_data(dispatcher: WebhookDispatcher) -> None:
    result = dispatcher.dispatch(WebhookJob.GENERATE, {"signals": []})
    assert result.success
    assert result.data is None
    assert not result.has_data


def test_unparseable_body_is_success_without_data(
    dispatcher: WebhookDispatcher, engine: EngineStub
) -> None:
    engine.reply("ingest", text="Workflow was started")
    result = dispatcher.dispatch(WebhookJob.INGEST, {"inputType": "text", "content": "x"})
    assert result.success
    assert result.data is None


def test_json_body_is_normalized(dispatcher: WebhookDispatcher, engine: EngineStub) -> None:
    engine.reply("ingest", json_body=[{"output": {"summary": "S"}, "sourceUrl": "https://a.test"}])
    result = dispatcher.dispatch(WebhookJob.INGEST, {"inputType": "url", "url": "https://a.test"})
    assert result.success
    assert result.data == {"summary": "S", "sourceUrl": "https://a.test"}


def test_empty_json_array_is_success_without_data(
    dispatcher: WebhookDispatcher, engine: EngineStub
) -> None:
    engine.reply("ingest", json_body=[])
    result = dispatcher.dispatch(WebhookJob.INGEST, {"inputType": "text", "content": "x"})
    assert result.success
    assert result.data is None


def test_non_2xx_is_http_error_with_body(dispatcher: WebhookDispatcher, engine: EngineStub) -> None:
    engine.reply("format", status=500, text="workflow crashed")
    result = dispatcher.dispatch(WebhookJob.FORMAT, {"insightId": "i1"})

    assert not result.success
    assert isinstance(result.failure, DispatchHttpError)
    assert result.failure.status_code == 500
    assert result.failure.body == "workflow crashed"
    assert result.error == "Webhook returned 500"
    assert len(engine.calls) == 1


def test_timeout_is_reported(dispatcher: WebhookDispatcher, engine: EngineStub) -> None:
    engine.fail("publish", httpx.ReadTimeout)
    result = dispatcher.dispatch(WebhookJob.PUBLISH, {"insightId": "i1"})

    assert not result.success
    assert isinstance(result.failure, DispatchTimeoutError)
    assert "timed out after 5 seconds" in result.error
    # The engine may have received the request, so it is never resent
    assert len(engine.calls) == 1


def test_slow_body_is_cut_off_at_the_overall_deadline(registry: WebhookRegistry) -> None:
    def trickle(request: httpx.Request) -> httpx.Response:
        def body():
            for _ in range(20):
                time.sleep(0.02)
                yield b" "

        return httpx.Response(200, content=body())

    client = httpx.Client(transport=httpx.MockTransport(trickle))
    dispatcher = WebhookDispatcher(registry, client, timeout=0.1)

    started = time.monotonic()
    result = dispatcher.dispatch(WebhookJob.FORMAT, {"insightId": "i1"})

    assert isinstance(result.failure, DispatchTimeoutError)
    assert time.monotonic() - started < 0.3


def test_connect_errors_are_retried_then_reported(
    dispatcher: WebhookDispatcher, engine: EngineStub
) -> None:
    engine.fail("cluster", httpx.ConnectError, "connection refused")
    result = dispatcher.dispatch(WebhookJob.CLUSTER, {"signals": []})

    assert not result.success
    assert isinstance(result.failure, DispatchNetworkError)
    assert "connection refused" in result.error
    assert len(engine.calls) == 3


def test_connect_error_then_success(
    registry: WebhookRegistry, engine: EngineStub, settings
) -> None:
    attempts = []

    def flaky(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"ok": True})

    client = httpx.Client(transport=httpx.MockTransport(flaky))
    dispatcher = WebhookDispatcher.from_settings(registry, settings, client=client)
    result = dispatcher.dispatch(WebhookJob.GENERATE, {"signals": []})

    assert result.success
    assert result.data == {"ok": True}
    assert len(attempts) == 2


def test_raise_for_failure(dispatcher: WebhookDispatcher, engine: EngineStub) -> None:
    engine.reply("cluster", status=404, text="no such workflow")
    result = dispatcher.dispatch(WebhookJob.CLUSTER, {"signals": []})
    with pytest.raises(DispatchHttpError) as exc_info:
        result.raise_for_failure()
    assert exc_info.value.detail == "no such workflow"


def test_close_leaves_injected_client_open(registry: WebhookRegistry, engine: EngineStub) -> None:
    client = engine.client()
    WebhookDispatcher(registry, client).close()
    assert not client.is_closed
