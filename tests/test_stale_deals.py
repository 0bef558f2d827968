"""
Tests for the stale deal notifier.

These tests verify:
1. Workflow output parsing (name doubles as id, bad lines dropped)
2. An empty stakeholder map performs no sends and no deal-table writes
3. Cache replacement on success and fallback on failure
4. Nested send order and per-pair failure isolation
5. The notify job summary and its alerts
"""

import pytest

from deal_followup.core.exceptions import SalesforceError
from deal_followup.jobs import notify_cron
from deal_followup.schemas.deals import ParsedDeal, StakeholderMappingIn
from deal_followup.services.slack_service import SlackThreadService
from deal_followup.services.stale_deals import StaleDealNotifier, parse_flow_output

from .conftest import FakeCRM


async def _assign(store, **roles):
    await store.upsert_stakeholders(
        [StakeholderMappingIn(role=role, slack_user_id=user) for role, user in roles.items()]
    )


def _notifier(store, chat, crm) -> StaleDealNotifier:
    return StaleDealNotifier(store, crm, SlackThreadService(chat, store))


# =============================================================================
# TEST: PARSING
# =============================================================================


class TestParseFlowOutput:
    def test_parses_listing_and_drops_garbage(self):
        deals = parse_flow_output(
            "- Acme Corp (Stage: Negotiation)\n- Globex (Stage: Prospecting)\ngarbage line"
        )
        assert deals == [
            ParsedDeal(id="Acme Corp", name="Acme Corp"),
            ParsedDeal(id="Globex", name="Globex"),
        ]

    def test_blank_lines_and_padding(self):
        deals = parse_flow_output("\n  - Initech   (Stage: Closed)  \n\n")
        assert [d.name for d in deals] == ["Initech"]

    def test_line_without_stage_is_dropped(self):
        assert parse_flow_output("- Acme Corp") == []

    def test_empty_output(self):
        assert parse_flow_output("") == []


# =============================================================================
# TEST: NOTIFICATION RUN
# =============================================================================


class TestNotifyStakeholders:
    async def test_empty_stakeholder_map_does_nothing(self, store, chat, crm):
        await store.replace_stale_deals([ParsedDeal(id="Old", name="Old")])

        result = await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        assert result.aborted
        assert chat.posts == []
        assert crm.flow_calls == []
        # The cached deals were not touched
        assert [d.name for d in await store.get_latest_stale_deals()] == ["Old"]

    async def test_sends_every_pair_stakeholders_outer(self, store, chat, crm):
        await _assign(store, PM="U_PM", SalesRep1="U_REP")

        result = await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        assert result.sent == 4
        assert result.failed == 0
        assert not result.used_cache
        assert crm.flow_calls == ["GetColdOpportunities"]

        sent_pairs = [(p["channel"], p["metadata"]["event_payload"]["deal_id"]) for p in chat.posts]
        by_user: dict[str, list[str]] = {}
        for user, deal in sent_pairs:
            by_user.setdefault(user, []).append(deal)
        assert by_user == {"U_PM": ["Acme Corp", "Globex"], "U_REP": ["Acme Corp", "Globex"]}
        # Deals inner: one stakeholder's sends are contiguous
        assert [u for u, _ in sent_pairs] in (
            ["U_PM", "U_PM", "U_REP", "U_REP"],
            ["U_REP", "U_REP", "U_PM", "U_PM"],
        )

        pm_texts = [p["text"] for p in chat.posts if p["channel"] == "U_PM"]
        assert pm_texts[0] == "Deal: *Acme Corp* has stalled. Any obstacles from a product perspective?"

    async def test_success_replaces_cache(self, store, chat, crm):
        await _assign(store, PM="U_PM")
        await store.replace_stale_deals([ParsedDeal(id="Old", name="Old")])

        await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        names = sorted(d.name for d in await store.get_latest_stale_deals())
        assert names == ["Acme Corp", "Globex"]

    async def test_workflow_failure_falls_back_to_cache(self, store, chat):
        await _assign(store, PM="U_PM")
        await store.replace_stale_deals([ParsedDeal(id="Cached", name="Cached")])
        crm = FakeCRM(error=SalesforceError("session expired"))

        result = await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        assert result.used_cache
        assert result.sent == 1
        assert chat.posts[0]["metadata"]["event_payload"]["deal_id"] == "Cached"
        assert [d.name for d in await store.get_latest_stale_deals()] == ["Cached"]

    async def test_missing_workflow_output_falls_back_to_cache(self, store, chat):
        await _assign(store, PM="U_PM")
        await store.replace_stale_deals([ParsedDeal(id="Cached", name="Cached")])

        result = await _notifier(store, chat, FakeCRM(flow_output=None)).notify_stakeholders_for_stale_deals()

        assert result.used_cache
        assert result.sent == 1

    async def test_workflow_and_cache_failure_aborts_run(self, store, chat, monkeypatch):
        await _assign(store, PM="U_PM")

        async def broken():
            raise RuntimeError("database is down")

        monkeypatch.setattr(store, "get_latest_stale_deals", broken)
        crm = FakeCRM(error=SalesforceError("session expired"))

        result = await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        assert result.aborted
        assert result.sent == 0
        assert chat.posts == []

    async def test_no_deals_sends_nothing(self, store, chat):
        await _assign(store, PM="U_PM")

        result = await _notifier(store, chat, FakeCRM(flow_output="nothing to report")).notify_stakeholders_for_stale_deals()

        assert result.deals == 0
        assert chat.posts == []

    async def test_failed_send_does_not_stop_the_batch(self, store, chat, crm):
        await _assign(store, PM="U_PM", SalesRep1="U_REP")
        chat.fail_for.add("U_PM")

        result = await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        assert result.failed == 2
        assert result.sent == 2
        assert {p["channel"] for p in chat.posts} == {"U_REP"}

    async def test_send_records_thread_and_notification(self, store, chat, crm):
        await _assign(store, PM="U_PM")

        await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        threads = await store.list_active_threads()
        assert {t.deal_id for t in threads} == {"Acme Corp", "Globex"}
        assert all(t.channel_id == "U_PM" for t in threads)

        notifications = await store.list_notifications()
        assert len(notifications) == 2
        assert {n.stakeholder_role for n in notifications} == {"PM"}
        assert {n.message_ts for n in notifications} == {t.thread_ts for t in threads}

    async def test_rerun_sends_duplicate_notifications(self, store, chat, crm):
        await _assign(store, PM="U_PM")
        notifier = _notifier(store, chat, crm)

        await notifier.notify_stakeholders_for_stale_deals()
        await notifier.notify_stakeholders_for_stale_deals()

        assert len(chat.posts) == 4
        assert len(await store.list_notifications()) == 4

    async def test_send_blocks_and_metadata(self, store, chat, crm):
        await _assign(store, PM="U_PM")

        await _notifier(store, chat, crm).notify_stakeholders_for_stale_deals()

        post = chat.posts[0]
        assert post["metadata"]["event_type"] == "stale_deal_notice"
        context = post["blocks"][1]["elements"][0]["text"]
        assert context == f"Related Deal: *{post['metadata']['event_payload']['deal_id']}* (ID: {post['metadata']['event_payload']['deal_id']})"


# =============================================================================
# TEST: NOTIFY JOB
# =============================================================================


class TestNotifyJob:
    @pytest.fixture
    def alerts(self, monkeypatch, services):
        sent: list[dict] = []

        async def record_alert(title, message, webhook_url, severity="error", details=None):
            sent.append({"title": title, "severity": severity, "details": details})

        monkeypatch.setattr(notify_cron, "build_services", lambda settings: services)
        monkeypatch.setattr(notify_cron, "send_alert", record_alert)
        return sent

    async def test_clean_run_reports_counts_without_alert(self, services, store, alerts):
        await _assign(store, PM="U_PM")

        results = await notify_cron.run_notify_job(services.settings)

        assert results["sent"] == 2
        assert results["failed"] == 0
        assert results["completed_at"] is not None
        assert alerts == []

    async def test_partial_failure_raises_warning(self, services, store, chat, alerts):
        await _assign(store, PM="U_PM", SalesRep1="U_REP")
        chat.fail_for = {"U_REP"}

        results = await notify_cron.run_notify_job(services.settings)

        assert results["failed"] == 2
        [alert] = alerts
        assert alert["severity"] == "warning"
        assert alert["details"]["failed"] == 2

    async def test_aborted_run_raises_warning(self, services, alerts):
        results = await notify_cron.run_notify_job(services.settings)

        assert results["aborted"]
        assert [a["severity"] for a in alerts] == ["warning"]

    async def test_crash_alerts_and_propagates(self, services, monkeypatch, alerts):
        async def crash():
            raise RuntimeError("boom")

        monkeypatch.setattr(services.notifier, "notify_stakeholders_for_stale_deals", crash)

        with pytest.raises(RuntimeError):
            await notify_cron.run_notify_job(services.settings)

        assert [a["severity"] for a in alerts] == ["critical"]
