"""
Tests for the HTTP routes, with fakes injected through the service container.

Requests go through httpx's ASGI transport, which awaits background tasks
before returning, so their effects are visible right after each call.
"""

import json
import time

import httpx
import pytest

from deal_followup.core.security import compute_slack_signature
from deal_followup.main import create_app
from deal_followup.schemas.deals import ParsedDeal

from .conftest import SIGNING_SECRET, FakeAgent, FakeObjectStore


@pytest.fixture
def app(services):
    return create_app(services)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def _slack_headers(body: bytes, timestamp: int | None = None, secret: str = SIGNING_SECRET) -> dict[str, str]:
    ts = str(timestamp if timestamp is not None else int(time.time()))
    return {
        "X-Slack-Request-Timestamp": ts,
        "X-Slack-Signature": compute_slack_signature(body, ts, secret),
        "Content-Type": "application/json",
    }


def _thread_reply_body(thread_ts: str, text: str = "We are moving forward", user: str = "U_PM") -> bytes:
    return json.dumps(
        {
            "type": "event_callback",
            "event": {
                "type": "message",
                "text": text,
                "user": user,
                "ts": "1800000000.000001",
                "thread_ts": thread_ts,
                "channel": user,
            },
        }
    ).encode()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


# =============================================================================
# TEST: DEALS
# =============================================================================


class TestDealRoutes:
    async def test_assign_and_read_stakeholders(self, client):
        response = await client.post(
            "/deals/stakeholders/assign",
            json={"mappings": [{"role": "PM", "slack_user_id": "U_PM", "full_name": "Pat"}]},
        )
        assert response.status_code == 200

        # Reassigning a role overwrites it
        await client.post(
            "/deals/stakeholders/assign",
            json={"mappings": [{"role": "PM", "slack_user_id": "U_PM2"}, {"role": "SalesRep1", "slack_user_id": "U_REP"}]},
        )

        response = await client.get("/deals/stakeholders")
        assert response.json() == {"PM": "U_PM2", "SalesRep1": "U_REP"}

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"mappings": [{"role": "PM"}]},
            {"mappings": [{"role": "PM", "slack_user_id": "   "}]},
            {"mappings": [{"role": "", "slack_user_id": "U1"}]},
            {"mappings": [{"role": "PM", "slack_user_id": "U1"}, {"role": "PM", "slack_user_id": "U2"}]},
        ],
    )
    async def test_invalid_mappings_rejected_before_write(self, client, store, body):
        response = await client.post("/deals/stakeholders/assign", json=body)

        assert response.status_code == 422
        assert await store.get_stakeholders() == {}

    async def test_notify_stale_runs_in_background(self, client, store, chat):
        await client.post(
            "/deals/stakeholders/assign",
            json={"mappings": [{"role": "PM", "slack_user_id": "U_PM"}]},
        )

        response = await client.post("/deals/notify-stale")

        assert response.status_code == 202
        assert response.json() == {"message": "Stale deal notification process initiated."}
        assert len(chat.posts) == 2
        assert len(await store.list_active_threads()) == 2

    async def test_notify_stale_failure_stays_in_logs(self, client, services, monkeypatch):
        async def crash():
            raise RuntimeError("boom")

        monkeypatch.setattr(services.notifier, "notify_stakeholders_for_stale_deals", crash)

        response = await client.post("/deals/notify-stale")

        assert response.status_code == 202


# =============================================================================
# TEST: SLACK WEBHOOK
# =============================================================================


class TestSlackWebhook:
    async def test_url_verification(self, client):
        body = json.dumps({"type": "url_verification", "challenge": "challenge-token"}).encode()

        response = await client.post("/slack/webhook", content=body, headers=_slack_headers(body))

        assert response.status_code == 200
        assert response.text == "challenge-token"

    async def test_bad_signature_rejected(self, client):
        body = json.dumps({"type": "url_verification", "challenge": "x"}).encode()

        response = await client.post(
            "/slack/webhook", content=body, headers=_slack_headers(body, secret="wrong")
        )

        assert response.status_code == 401

    async def test_stale_timestamp_rejected(self, client):
        body = json.dumps({"type": "url_verification", "challenge": "x"}).encode()

        response = await client.post(
            "/slack/webhook", content=body, headers=_slack_headers(body, timestamp=int(time.time()) - 600)
        )

        assert response.status_code == 401

    async def test_missing_headers_rejected(self, client):
        response = await client.post("/slack/webhook", json={"type": "url_verification", "challenge": "x"})
        assert response.status_code == 401

    async def test_thread_reply_is_processed(self, client, services, store, chat, agent):
        thread_ts = await services.thread_service.send_to_stakeholder(
            "U_PM", "Deal: *Acme* has stalled. Any obstacles from a product perspective?", "Acme", "Acme"
        )
        body = _thread_reply_body(thread_ts)

        response = await client.post("/slack/webhook", content=body, headers=_slack_headers(body))

        assert response.status_code == 200
        assert len(await store.list_responses()) == 1
        [resolution] = await store.list_resolutions()
        assert resolution.new_status == "Active"
        assert chat.posts[-1]["thread_ts"] == thread_ts
        assert chat.posts[-1]["text"] == agent.reply

    async def test_timeout_retries_are_acknowledged_not_reprocessed(self, client, services, store, agent):
        thread_ts = await services.thread_service.send_to_stakeholder("U_PM", "hello", "Acme", "Acme")
        body = _thread_reply_body(thread_ts)
        headers = {**_slack_headers(body), "X-Slack-Retry-Num": "1", "X-Slack-Retry-Reason": "http_timeout"}

        response = await client.post("/slack/webhook", content=body, headers=headers)

        assert response.status_code == 200
        assert agent.calls == []
        assert await store.list_responses() == []

    async def test_retry_after_failed_delivery_is_processed(self, client, services, store, agent):
        thread_ts = await services.thread_service.send_to_stakeholder("U_PM", "hello", "Acme", "Acme")
        body = _thread_reply_body(thread_ts)
        headers = {**_slack_headers(body), "X-Slack-Retry-Num": "1", "X-Slack-Retry-Reason": "http_error"}

        response = await client.post("/slack/webhook", content=body, headers=headers)

        assert response.status_code == 200
        assert len(agent.calls) == 1
        assert len(await store.list_responses()) == 1

    async def test_top_level_message_writes_nothing(self, client, store, chat, agent):
        body = json.dumps(
            {
                "type": "event_callback",
                "event": {"type": "message", "text": "closed won", "user": "U_PM", "ts": "1.0", "channel": "D1"},
            }
        ).encode()

        response = await client.post("/slack/webhook", content=body, headers=_slack_headers(body))

        assert response.status_code == 200
        assert agent.calls == []
        assert chat.posts == []
        assert await store.list_responses() == []
        assert await store.list_resolutions() == []

    async def test_bot_messages_are_acknowledged_and_ignored(self, client, agent):
        body = json.dumps(
            {
                "type": "event_callback",
                "event": {"type": "message", "bot_id": "B1", "text": "hi", "thread_ts": "1.0", "channel": "C1"},
            }
        ).encode()

        response = await client.post("/slack/webhook", content=body, headers=_slack_headers(body))

        assert response.status_code == 200
        assert agent.calls == []

    async def test_search_user(self, client, chat):
        chat.users = [
            {"id": "U1", "real_name": "Jane Doe", "profile": {"display_name": "jane"}},
            {"id": "U2", "real_name": "Jane Bot", "is_bot": True},
        ]

        response = await client.get("/slack/search-user", params={"name": "JANE"})

        assert response.json() == {"users": [{"id": "U1", "name": "Jane Doe"}]}

    async def test_search_user_without_name(self, client):
        response = await client.get("/slack/search-user")
        assert response.json() == {"users": []}


# =============================================================================
# TEST: READ PATHS
# =============================================================================


class TestReadRoutes:
    async def test_dashboard_keys(self, client, store):
        await store.replace_stale_deals([ParsedDeal(id="Acme", name="Acme")])
        await store.upsert_active_thread("100.1", "Acme", "Acme", "U_PM")

        data = (await client.get("/dashboard")).json()

        assert data["staleDeals"] == [{"id": "Acme", "name": "Acme"}]
        assert data["activeThreads"][0]["thread_ts"] == "100.1"
        assert data["activeThreadsCount"] == 1

    async def test_dashboard_sub_reads(self, client, store):
        await store.upsert_active_thread("100.1", "Acme", "Acme", "U_PM")

        assert (await client.get("/dashboard/active-threads/count")).json() == {"count": 1}
        assert len((await client.get("/dashboard/active-threads")).json()) == 1
        assert (await client.get("/dashboard/latest-stale-deals")).json() == []

    async def test_metrics(self, client, store):
        notification = await store.record_notification("U_PM", "PM", "Acme", "100.1")
        await store.record_response(notification.id, "closed", "200.1")
        await store.record_resolution("Acme", "Stalled", "Closed Won", resolved_by="U_PM")

        rates = (await client.get("/metrics/stakeholders/response-rates")).json()
        performance = (await client.get("/metrics/stakeholders/deal-performance")).json()

        assert rates["U_PM"]["rate"] == 100.0
        assert performance["U_PM"]["deals_closed"] == 1
        assert performance["U_PM"]["conversion_rate"] == 100.0

    async def test_unhandled_error_uses_error_envelope(self, app, store, monkeypatch):
        async def broken():
            raise RuntimeError("database is down")

        monkeypatch.setattr(store, "get_stakeholders", broken)
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/deals/stakeholders")

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"


# =============================================================================
# TEST: FILES & AGENT
# =============================================================================


class TestFileUpload:
    async def test_only_pdfs_are_stored(self, client, object_store):
        files = [
            ("files", ("deck.pdf", b"%PDF-1.4", "application/pdf")),
            ("files", ("notes.txt", b"hello", "text/plain")),
        ]

        response = await client.post("/files/upload-rag", files=files)

        assert response.status_code == 200
        data = response.json()
        assert data["message"].startswith("1 of 2 files")
        assert [f["key"] for f in data["uploadedFiles"]] == ["key-0-deck.pdf"]
        assert object_store.stored == [("deck.pdf", "application/pdf", b"%PDF-1.4")]

    async def test_no_files(self, client):
        response = await client.post("/files/upload-rag")
        assert response.status_code == 400

    async def test_store_failure(self, app, services):
        services.object_store = FakeObjectStore(fail=True)
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(
                "/files/upload-rag",
                files=[("files", ("deck.pdf", b"%PDF-1.4", "application/pdf"))],
            )

        assert response.status_code == 500


class TestKeyPeople:
    async def test_returns_agent_result(self, client, agent):
        response = await client.post("/agent/get-key-people", json={"dealId": "Acme", "s3Keys": ["k1"]})

        assert response.status_code == 200
        assert response.json() == {"result": "Jane Doe (CFO), John Roe (CTO)"}
        assert agent.key_people_calls == [{"s3_keys": ["k1"], "deal_id": "Acme", "other_info": None}]

    async def test_empty_body_rejected(self, client):
        response = await client.post("/agent/get-key-people", json={})
        assert response.status_code == 400

    async def test_agent_failure_returns_placeholder(self, app, services):
        services.key_people_agent = FakeAgent(error=RuntimeError("agent down"))
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/agent/get-key-people", json={"otherInfo": "renewal"})

        assert response.json() == {"result": "PM, SalesRep1, SalesRep2"}
