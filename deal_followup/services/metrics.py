"""
Metrics Service: stakeholder response rates and deal outcomes.

Both reports are computed in memory from the append-only tracking tables:

- Response rate: of the notifications sent to a stakeholder, how many got at
  least one reply.
- Deal performance: of the distinct deals a stakeholder was notified about,
  how many they resolved, closed, or revived.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from ..models import DealResolution, DealStatus
from ..schemas.metrics import DealPerformanceMetric, StakeholderResponseRate
from .store import CorrelationStore

logger = logging.getLogger(__name__)

REVIVED_STATUSES = frozenset({DealStatus.ACTIVE.value, DealStatus.NEGOTIATION.value})


def round2(value: float) -> float:
    """Round half-up to two decimals (Python's round() is half-to-even)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round2(100 * part / whole)


@dataclass
class _StakeholderNotifications:
    role: str
    notification_ids: set[UUID] = field(default_factory=set)
    deal_ids: set[str] = field(default_factory=set)


class MetricsService:
    def __init__(self, store: CorrelationStore):
        self.store = store

    async def _group_notifications(self) -> dict[str, _StakeholderNotifications]:
        notifications = await self.store.list_notifications()
        grouped: dict[str, _StakeholderNotifications] = {}
        for n in notifications:
            entry = grouped.setdefault(n.stakeholder_id, _StakeholderNotifications(role=n.stakeholder_role))
            entry.notification_ids.add(n.id)
            entry.deal_ids.add(n.deal_id)
        return grouped

    async def get_stakeholder_response_rates(self) -> dict[str, StakeholderResponseRate]:
        grouped = await self._group_notifications()
        responses = await self.store.list_responses()
        answered = {r.notification_id for r in responses}

        rates: dict[str, StakeholderResponseRate] = {}
        for stakeholder_id, entry in grouped.items():
            sent = len(entry.notification_ids)
            responded = len(entry.notification_ids & answered)
            rates[stakeholder_id] = StakeholderResponseRate(
                stakeholder_id=stakeholder_id,
                stakeholder_role=entry.role,
                sent=sent,
                responded=responded,
                rate=percentage(responded, sent),
            )

        logger.debug(f"Computed response rates for {len(rates)} stakeholders")
        return rates

    async def get_deal_performance_metrics(self) -> dict[str, DealPerformanceMetric]:
        grouped = await self._group_notifications()
        resolutions = await self.store.list_resolutions()

        # (resolved_by, deal_id) -> resolutions
        by_resolver: dict[tuple[str, str], list[DealResolution]] = defaultdict(list)
        for resolution in resolutions:
            if resolution.resolved_by:
                by_resolver[(resolution.resolved_by, resolution.deal_id)].append(resolution)

        metrics: dict[str, DealPerformanceMetric] = {}
        for stakeholder_id, entry in grouped.items():
            deals_responded = 0
            deals_closed = 0
            deals_revived = 0

            for deal_id in entry.deal_ids:
                deal_resolutions = by_resolver.get((stakeholder_id, deal_id))
                if not deal_resolutions:
                    continue
                deals_responded += 1
                for resolution in deal_resolutions:
                    if resolution.new_status == DealStatus.CLOSED_WON.value:
                        deals_closed += 1
                    if (
                        resolution.previous_status == DealStatus.STALLED.value
                        and resolution.new_status in REVIVED_STATUSES
                    ):
                        deals_revived += 1

            total_deals = len(entry.deal_ids)
            metrics[stakeholder_id] = DealPerformanceMetric(
                stakeholder_id=stakeholder_id,
                stakeholder_role=entry.role,
                total_deals=total_deals,
                deals_responded=deals_responded,
                deals_closed=deals_closed,
                deals_revived=deals_revived,
                conversion_rate=percentage(deals_closed, total_deals),
            )

        return metrics

    async def track_deal_resolution(
        self,
        deal_id: str,
        previous_status: str,
        new_status: str,
        resolved_by: str | None = None,
    ) -> DealResolution:
        resolution = await self.store.record_resolution(deal_id, previous_status, new_status, resolved_by)
        logger.info(f"Tracked resolution for deal {deal_id}: {previous_status} -> {new_status}")
        return resolution
