"""
Cold Deal Job: alert the sales channel about deals nobody has touched.

Reads open opportunities straight from Salesforce (no database involved) and
posts one incoming-webhook message per cold deal.

Typical cron schedule: 0 8 * * * (daily at 8 AM)
"""

import asyncio
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

import httpx

from ..core.config import Settings, get_settings
from ..core.exceptions import ConfigurationError
from ..integrations.salesforce import SalesforceClient
from ..integrations.slack import SlackClient
from ..services.cold_detector import cold_alert_text, detect_cold_deals
from ..services.ports import CRMClient
from .alerts import send_alert

logger = logging.getLogger(__name__)


async def alert_cold_deals(
    crm: CRMClient,
    slack: SlackClient,
    webhook_url: str,
    cold_days: int,
    stalled_days: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Detect cold deals and post an alert for each; one failed post is skipped."""
    opportunities = await crm.fetch_active_records()
    cold_deals = detect_cold_deals(opportunities, cold_days, stalled_days, now=now)

    results: dict[str, Any] = {
        "opportunities": len(opportunities),
        "cold": len(cold_deals),
        "alerted": 0,
        "failed": 0,
    }

    for opp in cold_deals:
        try:
            await slack.post_webhook(webhook_url, {"text": cold_alert_text(opp)})
            results["alerted"] += 1
        except Exception as e:
            results["failed"] += 1
            logger.error(f"Failed to post cold deal alert for {opp.name}: {e}")

    return results


async def run_cold_deal_job(settings: Settings) -> dict[str, Any]:
    if not settings.slack_webhook_url:
        raise ConfigurationError("Missing SLACK_WEBHOOK for cold deal alerts")

    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting cold deal job at {start_time.isoformat()}")

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http_client:
        try:
            results = await alert_cold_deals(
                SalesforceClient(settings, http_client),
                SlackClient(settings, http_client),
                settings.slack_webhook_url,
                settings.cold_days,
                settings.stalled_days,
            )
        except Exception as e:
            logger.error(f"Cold deal job failed: {e}")
            await send_alert(
                title="Cold Deal Job Failed",
                message="The cold deal detection job crashed unexpectedly.",
                webhook_url=settings.slack_alerts_webhook_url,
                severity="critical",
                details={
                    "error": str(e),
                    "traceback": traceback.format_exc()[-500:],
                    "started_at": start_time.isoformat(),
                },
            )
            raise

    results["duration_seconds"] = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        f"Cold deal job completed: {results['cold']} of {results['opportunities']} open deals are cold, "
        f"{results['alerted']} alerts posted"
    )
    return results


def main():
    """CLI entry point for the cold deal job."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        results = asyncio.run(run_cold_deal_job(settings))
        logger.info(f"Job completed: {results}")
    except Exception as e:
        logger.error(f"Job failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
