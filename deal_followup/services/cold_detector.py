"""
Cold Deal Detector: flags open opportunities nobody has touched recently.

A deal is cold when either:
- whole days since the last activity >= cold_days (no activity at all counts), or
- whole days since the last modification >= stalled_days
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from ..integrations.salesforce import Opportunity

logger = logging.getLogger(__name__)

DEFAULT_COLD_DAYS = 7
DEFAULT_STALLED_DAYS = 10

COLD_ALERT_TEMPLATE = ":rotating_light: Deal *{name}* looks cold.\nSuggested action: Follow up NOW."


def days_since(moment: datetime | None, now: datetime) -> float:
    """Whole days elapsed since `moment`; infinite when it never happened."""
    if moment is None:
        return float("inf")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).days


def is_cold(
    opportunity: Opportunity,
    cold_days: int = DEFAULT_COLD_DAYS,
    stalled_days: int = DEFAULT_STALLED_DAYS,
    now: datetime | None = None,
) -> bool:
    now = now or datetime.now(timezone.utc)
    since_activity = days_since(opportunity.last_activity_at, now)
    since_modified = days_since(opportunity.last_modified_at, now)
    cold = since_activity >= cold_days or since_modified >= stalled_days
    if cold:
        logger.info(
            f"Deal {opportunity.name} is cold: {since_activity} days since activity, "
            f"{since_modified} days since modification"
        )
    return cold


def detect_cold_deals(
    opportunities: Iterable[Opportunity],
    cold_days: int = DEFAULT_COLD_DAYS,
    stalled_days: int = DEFAULT_STALLED_DAYS,
    now: datetime | None = None,
) -> list[Opportunity]:
    now = now or datetime.now(timezone.utc)
    logger.info(f"Detecting cold deals with cold_days={cold_days} and stalled_days={stalled_days}")
    return [opp for opp in opportunities if is_cold(opp, cold_days, stalled_days, now)]


def cold_alert_text(opportunity: Opportunity) -> str:
    return COLD_ALERT_TEMPLATE.format(name=opportunity.name)
