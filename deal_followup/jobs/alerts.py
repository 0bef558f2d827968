"""Failure alerts for the scheduled jobs."""

import logging
from datetime import datetime, timezone

import httpx

logger = logging.getLogger(__name__)


async def send_alert(
    title: str,
    message: str,
    webhook_url: str | None,
    severity: str = "error",
    details: dict | None = None,
) -> None:
    """
    Log an alert and, when a Slack webhook is configured, post it there.

    Never raises: a broken alert channel must not mask the original failure.
    """
    log_message = f"[CRON ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    else:
        logger.error(log_message)

    if not webhook_url:
        return

    try:
        await _send_slack_alert(webhook_url, title, message, severity, details)
    except Exception as e:
        logger.error(f"Failed to send Slack alert: {e}")


async def _send_slack_alert(
    webhook_url: str,
    title: str,
    message: str,
    severity: str,
    details: dict | None,
) -> None:
    color = "#dc2626" if severity == "critical" else "#f59e0b"  # Red or orange

    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f":rotating_light: {title}", "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": message},
        },
    ]

    if details:
        details_text = "\n".join(f"• *{k}*: {v}" for k, v in details.items())
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": details_text},
        })

    blocks.append({
        "type": "context",
        "elements": [
            {"type": "mrkdwn", "text": f"Severity: *{severity.upper()}* | Time: {datetime.now(timezone.utc).isoformat()}"},
        ],
    })

    async with httpx.AsyncClient() as client:
        response = await client.post(
            webhook_url,
            json={"attachments": [{"color": color, "blocks": blocks}]},
            timeout=10,
        )
        response.raise_for_status()
