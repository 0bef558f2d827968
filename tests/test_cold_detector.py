"""Tests for cold deal detection and the cold deal job."""

from datetime import datetime, timedelta, timezone

import pytest

from deal_followup.core.config import Settings
from deal_followup.core.exceptions import ConfigurationError, SlackAPIError
from deal_followup.integrations.salesforce import Opportunity
from deal_followup.jobs.alerts import send_alert
from deal_followup.jobs.cold_deal_cron import alert_cold_deals, run_cold_deal_job
from deal_followup.services.cold_detector import cold_alert_text, detect_cold_deals

from .conftest import FakeCRM

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _opp(name: str, activity_days: int | None, modified_days: int) -> Opportunity:
    return Opportunity(
        id=f"006{name}",
        name=name,
        stage="Prospecting",
        last_activity_at=None if activity_days is None else NOW - timedelta(days=activity_days),
        last_modified_at=NOW - timedelta(days=modified_days),
        owner_id="005OWNER",
    )


class TestDetectColdDeals:
    def test_thresholds(self):
        opportunities = [
            _opp("fresh", activity_days=1, modified_days=1),
            _opp("quiet", activity_days=7, modified_days=1),
            _opp("untouched", activity_days=1, modified_days=10),
            _opp("almost", activity_days=6, modified_days=9),
            _opp("never", activity_days=None, modified_days=0),
        ]

        cold = detect_cold_deals(opportunities, cold_days=7, stalled_days=10, now=NOW)

        assert [o.name for o in cold] == ["quiet", "untouched", "never"]

    def test_partial_days_round_down(self):
        opp = _opp("edge", activity_days=0, modified_days=0)
        opp.last_activity_at = NOW - timedelta(days=6, hours=23)
        assert detect_cold_deals([opp], now=NOW) == []

    def test_alert_text(self):
        assert cold_alert_text(_opp("Acme", 1, 1)) == (
            ":rotating_light: Deal *Acme* looks cold.\nSuggested action: Follow up NOW."
        )


class _FakeWebhookSlack:
    def __init__(self, fail_on: str | None = None):
        self.posts: list[tuple[str, dict]] = []
        self.fail_on = fail_on

    async def post_webhook(self, url, payload):
        if self.fail_on and self.fail_on in payload["text"]:
            raise SlackAPIError("incoming-webhook", "HTTP 500")
        self.posts.append((url, payload))


class TestAlertColdDeals:
    async def test_posts_one_alert_per_cold_deal(self):
        crm = FakeCRM()
        crm.opportunities = [_opp("Acme", 30, 30), _opp("Globex", 1, 1), _opp("Initech", None, 2)]
        slack = _FakeWebhookSlack(fail_on="Initech")

        results = await alert_cold_deals(crm, slack, "https://hooks.slack.com/x", 7, 10, now=NOW)

        assert results == {"opportunities": 3, "cold": 2, "alerted": 1, "failed": 1}
        assert slack.posts == [("https://hooks.slack.com/x", {"text": cold_alert_text(crm.opportunities[0])})]


class TestColdDealJob:
    async def test_requires_alert_webhook(self):
        with pytest.raises(ConfigurationError):
            await run_cold_deal_job(Settings(SLACK_WEBHOOK=None))

    async def test_alert_without_webhook_only_logs(self, caplog):
        await send_alert("Job Failed", "it broke", webhook_url=None, details={"error": "boom"})

        assert "[CRON ALERT] Job Failed: it broke" in caplog.text
