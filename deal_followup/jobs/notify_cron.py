"""
Stale Deal Notification Job: one notifier run, for cron or a scheduler.

Typical cron schedule: 0 9 * * 1-5 (weekdays at 9 AM)

Usage:
    python -m deal_followup.jobs.notify_cron
"""

import asyncio
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

from ..core.config import Settings, get_settings
from ..core.container import build_services
from .alerts import send_alert

logger = logging.getLogger(__name__)


async def run_notify_job(settings: Settings) -> dict[str, Any]:
    """
    Run the stale deal notifier once and return a result summary.

    Raises whatever crashed the run, after alerting.
    """
    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting stale deal notification job at {start_time.isoformat()}")

    services = build_services(settings)
    results: dict[str, Any] = {
        "started_at": start_time.isoformat(),
        "completed_at": None,
    }

    try:
        run = await services.notifier.notify_stakeholders_for_stale_deals()
        results.update(run.model_dump())
    except Exception as e:
        logger.error(f"Stale deal notification job failed: {e}")
        await send_alert(
            title="Stale Deal Notification Job Failed",
            message="The stale deal notification job crashed unexpectedly.",
            webhook_url=settings.slack_alerts_webhook_url,
            severity="critical",
            details={
                "error": str(e),
                "traceback": traceback.format_exc()[-500:],  # Last 500 chars
                "started_at": results["started_at"],
            },
        )
        raise
    finally:
        await services.close()

    end_time = datetime.now(timezone.utc)
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"Notification job completed in {results['duration_seconds']:.2f}s: "
        f"{results['sent']} sent, {results['failed']} failed"
    )

    # Partial failures: the run completed but some sends did not
    if results["failed"] > 0 or results["aborted"]:
        await send_alert(
            title="Stale Deal Notification Job Completed with Warnings",
            message=(
                "The notification run was aborted."
                if results["aborted"]
                else f"{results['failed']} stakeholder notifications failed to send."
            ),
            webhook_url=settings.slack_alerts_webhook_url,
            severity="warning",
            details={
                "sent": results["sent"],
                "failed": results["failed"],
                "used_cache": results["used_cache"],
            },
        )

    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the notification job."""
    import argparse

    parser = argparse.ArgumentParser(description="Notify stakeholders about stale deals")
    parser.add_argument(
        "--database-url",
        default=None,
        help="PostgreSQL connection string (defaults to DATABASE_URL)",
    )
    args = parser.parse_args()

    settings = get_settings()
    if args.database_url:
        settings = settings.model_copy(update={"database_url": args.database_url})

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        results = asyncio.run(run_notify_job(settings))
        logger.info(f"Job completed: {results}")
    except Exception as e:
        logger.error(f"Job failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
