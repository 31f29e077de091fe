"""Tests for the HTTP API surface."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from signaldesk.api.app import create_app
from signaldesk.config import Settings
from signaldesk.lifecycle.states import WebhookJob
from signaldesk.storage.models import Insight, Signal, Thought
from signaldesk.webhooks.registry import WebhookRegistry
from tests.conftest import ENGINE_BASE_URL, EngineStub, make_insight, make_signal

URL = "https://example.com/story"


@pytest.fixture
def client(settings: Settings, engine: EngineStub, session: Session) -> Iterator[TestClient]:
    registry = WebhookRegistry(session)
    for job in WebhookJob:
        registry.upsert(job.value, f"{ENGINE_BASE_URL}/{job.value}")
    app = create_app(settings, http_client=engine.client())
    with TestClient(app) as test_client:
        yield test_client


def _fresh(session: Session, model, record_id: str):
    session.expire_all()
    return session.get(model, record_id)


# ---------------------------------------------------------------------------
# Capture and receive
# ---------------------------------------------------------------------------


class TestCaptureEndpoints:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json()["status"] == "healthy"

    def test_ingest_synchronous(self, client: TestClient, engine: EngineStub) -> None:
        engine.reply("ingest", json_body={"output": {"summary": "Gist", "key_insights": ["k"]}})
        resp = client.post("/api/ingest", json={"inputType": "text", "content": "Pasted"})

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["signalId"]
        assert body["insights"] == ["k"]

    def test_ingest_asynchronous_url(self, client: TestClient, session: Session) -> None:
        resp = client.post("/api/ingest", json={"inputType": "url", "url": URL})

        assert resp.status_code == 202
        placeholder = _fresh(session, Signal, resp.json()["signalId"])
        assert placeholder.status == "processing"

    def test_ingest_validation(self, client: TestClient, engine: EngineStub) -> None:
        resp = client.post("/api/ingest", json={"inputType": "url"})
        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "url is required for url and youtube types",
            "code": "validation_error",
            "detail": None,
        }
        assert engine.calls == []

    def test_ingest_dispatch_failure_is_502(self, client: TestClient, engine: EngineStub) -> None:
        engine.reply("ingest", status=500, text="n8n exploded")
        resp = client.post("/api/ingest", json={"inputType": "url", "url": URL})

        assert resp.status_code == 502
        assert resp.json()["error"] == "Webhook returned 500"
        assert resp.json()["detail"] == "n8n exploded"

    def test_not_configured_is_502_with_code(self, client: TestClient) -> None:
        client.delete("/api/settings/webhooks/ingest")
        resp = client.post("/api/ingest", json={"inputType": "text", "content": "x"})

        assert resp.status_code == 502
        assert resp.json()["code"] == "not_configured"

    def test_receive_signal(self, client: TestClient, session: Session) -> None:
        resp = client.post(
            "/api/signals/receive",
            json=[{"output": {"summary": "From engine"}, "sourceUrl": URL}],
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["created"] is True
        assert _fresh(session, Signal, body["signalId"]).summary == "From engine"

    def test_receive_signal_fills_placeholder(self, client: TestClient) -> None:
        placeholder_id = client.post("/api/ingest", json={"inputType": "url", "url": URL}).json()[
            "signalId"
        ]
        resp = client.post("/api/signals/receive", json={"summary": "Done", "sourceUrl": URL})

        assert resp.status_code == 201
        assert resp.json()["signalId"] == placeholder_id
        assert resp.json()["created"] is False

    def test_receive_signal_missing_fields(self, client: TestClient) -> None:
        resp = client.post("/api/signals/receive", json={"sourceUrl": URL})
        assert resp.status_code == 400

    def test_malformed_body_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/signals/receive",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["success"] is False


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


class TestSignalEndpoints:
    def test_list_signals(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session, tags=["ai"])
        session.add(Thought(content="note", signal_id=signal.id))
        session.commit()

        body = client.get("/api/signals", params={"status": "unread"}).json()

        assert body["total"] == 1
        assert body["limit"] == 50
        assert body["offset"] == 0
        item = body["signals"][0]
        assert item["id"] == signal.id
        assert item["tags"] == ["ai"]
        assert item["thoughts"][0]["content"] == "note"
        assert "createdAt" in item and "sourceUrl" in item

    def test_list_limit_is_capped(self, client: TestClient) -> None:
        assert client.get("/api/signals", params={"limit": 500}).json()["limit"] == 100

    def test_list_bad_status(self, client: TestClient) -> None:
        assert client.get("/api/signals", params={"status": "bogus"}).status_code == 400

    def test_get_signal_and_404(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session)
        assert client.get(f"/api/signals/{signal.id}").json()["title"] == "A signal"

        resp = client.get("/api/signals/missing")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Signal not found: missing"

    def test_review_triggers_generation(
        self, client: TestClient, session: Session, engine: EngineStub
    ) -> None:
        signal = make_signal(session)
        resp = client.patch(
            "/api/signals", json={"id": signal.id, "status": "reviewed", "thought": "Keep"}
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["generationDispatched"] is True
        assert body["signal"]["status"] == "processed"
        assert len(engine.payloads("generate")) == 1

    def test_review_survives_generation_failure(
        self, client: TestClient, session: Session, engine: EngineStub
    ) -> None:
        engine.reply("generate", status=500, text="down")
        signal = make_signal(session)
        resp = client.patch("/api/signals", json={"id": signal.id, "status": "reviewed"})

        assert resp.status_code == 200
        assert resp.json()["generationDispatched"] is False
        assert resp.json()["signal"]["status"] == "reviewed"

    def test_invalid_transition_is_400(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session, status="archived")
        resp = client.patch("/api/signals", json={"id": signal.id, "status": "reviewed"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_transition"

    def test_edit_signal(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session)
        resp = client.patch(
            f"/api/signals/{signal.id}",
            json={"title": "Edited", "tags": ["x"], "sourceUrl": URL, "status": "archived"},
        )

        assert resp.status_code == 200
        updated = resp.json()["signal"]
        assert updated["title"] == "Edited"
        assert updated["tags"] == ["x"]
        assert updated["sourceUrl"] == URL
        assert updated["status"] == "archived"

    def test_edit_with_invalid_transition_changes_nothing(
        self, client: TestClient, session: Session
    ) -> None:
        signal = make_signal(session, title="Original", status="archived")
        resp = client.patch(
            f"/api/signals/{signal.id}", json={"title": "Edited", "status": "reviewed"}
        )

        assert resp.status_code == 400
        assert resp.json()["code"] == "invalid_transition"
        reloaded = _fresh(session, Signal, signal.id)
        assert (reloaded.title, reloaded.status) == ("Original", "archived")

    def test_delete_signal(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session)
        assert client.delete(f"/api/signals/{signal.id}").json() == {"success": True}
        assert _fresh(session, Signal, signal.id) is None

    def test_cluster(self, client: TestClient, session: Session, engine: EngineStub) -> None:
        signal = make_signal(session, status="reviewed")
        resp = client.post("/api/cluster")

        assert resp.json()["count"] == 1
        assert _fresh(session, Signal, signal.id).status == "clustered"

    def test_cluster_empty(self, client: TestClient, engine: EngineStub) -> None:
        resp = client.post("/api/cluster")
        assert resp.status_code == 200
        assert resp.json()["count"] == 0
        assert engine.calls == []

    def test_cluster_failure(self, client: TestClient, session: Session, engine: EngineStub) -> None:
        engine.reply("cluster", status=500, text="")
        signal = make_signal(session, status="reviewed")
        assert client.post("/api/cluster").status_code == 502
        assert _fresh(session, Signal, signal.id).status == "reviewed"


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


class TestInsightEndpoints:
    def test_create_and_get(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session, title="Evidence")
        thought = client.post(
            "/api/thoughts", json={"content": "Idea", "signalId": signal.id}
        ).json()["thought"]

        resp = client.post(
            "/api/insights",
            json={"coreInsight": "Claim", "thoughtIds": [thought["id"]], "signalIds": [signal.id]},
        )
        assert resp.status_code == 201
        insight_id = resp.json()["insight"]["id"]

        body = client.get(f"/api/insights/{insight_id}").json()
        assert body["status"] == "draft"
        assert body["thoughts"][0]["signal"] == {"id": signal.id, "title": "Evidence"}
        assert body["signals"] == [{"id": signal.id, "title": "Evidence"}]

    def test_create_requires_core_insight(self, client: TestClient) -> None:
        assert client.post("/api/insights", json={}).status_code == 400

    def test_format_and_preview_callback(self, client: TestClient, session: Session) -> None:
        insight = make_insight(session)
        resp = client.post(f"/api/insights/{insight.id}/format", json={"tone": "decisive"})
        assert resp.json()["insight"]["status"] == "formatting"

        resp = client.post(
            "/api/insights/preview",
            json={"insightId": insight.id, "preview": "Post", "platform": "linkedin"},
        )
        assert resp.json() == {
            "success": True,
            "insightId": insight.id,
            "status": "previewing",
            "message": "Preview saved successfully",
        }

    def test_format_failure_reverts(
        self, client: TestClient, session: Session, engine: EngineStub
    ) -> None:
        engine.reply("format", status=500, text="nope")
        insight = make_insight(session)

        assert client.post(f"/api/insights/{insight.id}/format").status_code == 502
        assert _fresh(session, Insight, insight.id).status == "draft"

    def test_preview_callback_errors(self, client: TestClient) -> None:
        assert client.post("/api/insights/preview", json={"preview": "x"}).status_code == 400
        resp = client.post(
            "/api/insights/preview",
            json={"insightId": "missing", "preview": "x", "platform": "linkedin"},
        )
        assert resp.status_code == 404

    def test_publish_and_confirm(self, client: TestClient, session: Session) -> None:
        insight = make_insight(session, status="previewing", preview="Post")
        resp = client.post(f"/api/insights/{insight.id}/publish", json={})
        assert resp.json()["insight"]["status"] == "publishing"

        resp = client.post(
            "/api/insights/confirm",
            json={"insightId": insight.id, "status": "success", "postUrl": "https://li.test/1"},
        )
        body = resp.json()
        assert body["success"] is True
        assert body["status"] == "published"
        assert body["publishedUrl"] == "https://li.test/1"

    def test_confirm_failure(self, client: TestClient, session: Session) -> None:
        insight = make_insight(session, status="publishing", preview="Post")
        resp = client.post(
            "/api/insights/confirm",
            json={"insightId": insight.id, "status": "failed", "error": "expired token"},
        )
        body = resp.json()
        assert resp.status_code == 200
        assert body["success"] is False
        assert body["status"] == "draft"
        assert body["error"] == "expired token"
        assert _fresh(session, Insight, insight.id).preview is None

    def test_confirm_unknown_insight(self, client: TestClient) -> None:
        resp = client.post("/api/insights/confirm", json={"insightId": "nope", "status": "failed"})
        assert resp.status_code == 404

    def test_generate(self, client: TestClient, session: Session, engine: EngineStub) -> None:
        signal = make_signal(session, status="reviewed")
        resp = client.post("/api/insights/generate", json={"signalIds": [signal.id]})
        assert resp.json()["success"] is True
        assert _fresh(session, Signal, signal.id).status == "processed"

        assert client.post("/api/insights/generate", json={"signalIds": []}).status_code == 400
        assert client.post("/api/insights/generate", json={"signalIds": ["x"]}).status_code == 404

    def test_update_and_delete(self, client: TestClient, session: Session) -> None:
        insight = make_insight(session)
        resp = client.patch(f"/api/insights/{insight.id}", json={"preview": "Hand edited"})
        assert resp.json()["insight"]["preview"] == "Hand edited"

        assert client.delete(f"/api/insights/{insight.id}").json() == {"success": True}
        assert client.get(f"/api/insights/{insight.id}").status_code == 404

    def test_list_by_status(self, client: TestClient, session: Session) -> None:
        make_insight(session, status="draft")
        make_insight(session, status="published")
        body = client.get("/api/insights", params={"status": "published"}).json()
        assert [i["status"] for i in body["insights"]] == ["published"]


# ---------------------------------------------------------------------------
# Thoughts, highlights and settings
# ---------------------------------------------------------------------------


class TestAnnotationEndpoints:
    def test_thoughts(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session)
        created = client.post("/api/thoughts", json={"content": "On signal", "signalId": signal.id})
        assert created.status_code == 201
        client.post("/api/thoughts", json={"content": "Free floating"})

        unlinked = client.get("/api/thoughts", params={"unlinked": "true"}).json()["thoughts"]
        assert {t["content"] for t in unlinked} == {"On signal", "Free floating"}
        by_signal = client.get("/api/thoughts", params={"signalId": signal.id}).json()["thoughts"]
        assert [t["content"] for t in by_signal] == ["On signal"]

        thought_id = created.json()["thought"]["id"]
        assert client.delete(f"/api/thoughts/{thought_id}").status_code == 200
        assert _fresh(session, Thought, thought_id) is None

    def test_thought_for_unknown_signal(self, client: TestClient) -> None:
        resp = client.post("/api/thoughts", json={"content": "x", "signalId": "missing"})
        assert resp.status_code == 404

    def test_highlights(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session)
        resp = client.post(
            "/api/highlights",
            json={"signalId": signal.id, "text": "Body", "startPos": 0, "endPos": 4},
        )
        assert resp.status_code == 201
        highlight = resp.json()["highlight"]
        assert (highlight["startPos"], highlight["endPos"]) == (0, 4)

        listed = client.get("/api/highlights", params={"signalId": signal.id}).json()["highlights"]
        assert [h["id"] for h in listed] == [highlight["id"]]

        assert client.delete(f"/api/highlights/{highlight['id']}").status_code == 200
        assert client.delete(f"/api/highlights/{highlight['id']}").status_code == 404

    def test_highlight_bad_offsets(self, client: TestClient, session: Session) -> None:
        signal = make_signal(session)
        resp = client.post(
            "/api/highlights", json={"signalId": signal.id, "text": "x", "startPos": 5, "endPos": 2}
        )
        assert resp.status_code == 400


class TestWebhookEndpoints:
    def test_list_save_delete(self, client: TestClient, session: Session) -> None:
        configs = client.get("/api/settings/webhooks").json()["configs"]
        assert [c["name"] for c in configs] == sorted(j.value for j in WebhookJob)

        resp = client.post(
            "/api/settings/webhooks", json={"name": "publish", "url": "https://n8n.test/pub"}
        )
        assert resp.json()["config"]["url"] == "https://n8n.test/pub"

        assert client.delete("/api/settings/webhooks/publish").json() == {"success": True}
        assert client.delete("/api/settings/webhooks/publish").status_code == 404

    def test_save_rejects_bad_url(self, client: TestClient) -> None:
        resp = client.post("/api/settings/webhooks", json={"name": "ingest", "url": "nope"})
        assert resp.status_code == 400
        assert "Invalid URL format" in resp.json()["error"]
