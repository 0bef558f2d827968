"""
Correlation Store: persistence for stakeholders, threads, and tracking rows.

Every method runs in its own session and commits before returning, so rows are
visible to concurrent webhook deliveries as soon as the call completes. Writes
are single-row upserts/inserts; the only multi-row write is the stale-deal
replacement, which is one transaction.
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.database import session_scope
from ..models import (
    ActiveSlackThread,
    DealResolution,
    LatestStaleDeal,
    StakeholderMapping,
    StakeholderNotification,
    StakeholderResponse,
)
from ..models.base import utcnow
from ..schemas.deals import ParsedDeal, StakeholderMappingIn

logger = logging.getLogger(__name__)


class CorrelationStore:
    """Repository over the six follow-up tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # =========================================================================
    # STAKEHOLDER MAPPING
    # =========================================================================

    async def get_stakeholders(self) -> dict[str, str]:
        """Current role -> Slack user id map."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(StakeholderMapping))
            mappings = result.scalars().all()

        stakeholder_map: dict[str, str] = {}
        for mapping in mappings:
            if mapping.role and mapping.slack_user_id:
                stakeholder_map[mapping.role] = mapping.slack_user_id
            else:
                logger.warning(f"Skipping incomplete mapping for role {mapping.role!r}")
        return stakeholder_map

    async def upsert_stakeholders(self, mappings: Sequence[StakeholderMappingIn]) -> None:
        """Insert or overwrite mappings, keyed by role."""
        async with session_scope(self._session_factory) as session:
            for m in mappings:
                await session.merge(
                    StakeholderMapping(
                        role=m.role,
                        slack_user_id=m.slack_user_id,
                        full_name=m.full_name,
                        updated_at=utcnow(),
                    )
                )

    # =========================================================================
    # STALE DEALS
    # =========================================================================

    async def get_latest_stale_deals(self) -> list[ParsedDeal]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(LatestStaleDeal).order_by(LatestStaleDeal.identified_at.desc())
            )
            rows = result.scalars().all()
        return [ParsedDeal(id=row.deal_id, name=row.deal_name) for row in rows]

    async def replace_stale_deals(self, deals: Sequence[ParsedDeal]) -> None:
        """Delete every cached deal and insert `deals` in one transaction."""
        async with session_scope(self._session_factory) as session:
            await session.execute(delete(LatestStaleDeal))
            now = utcnow()
            session.add_all(
                [LatestStaleDeal(deal_id=d.id, deal_name=d.name, identified_at=now) for d in deals]
            )

    # =========================================================================
    # THREADS
    # =========================================================================

    async def upsert_active_thread(
        self,
        thread_ts: str,
        deal_id: str,
        deal_name: str,
        channel_id: str,
    ) -> None:
        async with session_scope(self._session_factory) as session:
            await session.merge(
                ActiveSlackThread(
                    thread_ts=thread_ts,
                    deal_id=deal_id,
                    deal_name=deal_name,
                    channel_id=channel_id,
                )
            )

    async def get_active_thread(self, thread_ts: str) -> ActiveSlackThread | None:
        async with session_scope(self._session_factory) as session:
            return await session.get(ActiveSlackThread, thread_ts)

    async def list_active_threads(self) -> list[ActiveSlackThread]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(ActiveSlackThread).order_by(ActiveSlackThread.created_at.desc())
            )
            return list(result.scalars().all())

    async def count_active_threads(self) -> int:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(func.count()).select_from(ActiveSlackThread))
            return result.scalar_one()

    # =========================================================================
    # NOTIFICATIONS & RESPONSES
    # =========================================================================

    async def record_notification(
        self,
        stakeholder_id: str,
        stakeholder_role: str,
        deal_id: str,
        message_ts: str,
    ) -> StakeholderNotification:
        notification = StakeholderNotification(
            stakeholder_id=stakeholder_id,
            stakeholder_role=stakeholder_role,
            deal_id=deal_id,
            message_ts=message_ts,
        )
        async with session_scope(self._session_factory) as session:
            session.add(notification)
        return notification

    async def find_notification_id(self, message_ts: str) -> UUID | None:
        """Id of the (first) notification whose message started this thread."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(StakeholderNotification.id)
                .where(StakeholderNotification.message_ts == message_ts)
                .order_by(StakeholderNotification.sent_at)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def list_notifications(self) -> list[StakeholderNotification]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(StakeholderNotification))
            return list(result.scalars().all())

    async def record_response(
        self,
        notification_id: UUID,
        response_text: str,
        response_ts: str,
    ) -> StakeholderResponse:
        response = StakeholderResponse(
            notification_id=notification_id,
            response_text=response_text,
            response_ts=response_ts,
        )
        async with session_scope(self._session_factory) as session:
            session.add(response)
        return response

    async def list_responses(self) -> list[StakeholderResponse]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(StakeholderResponse))
            return list(result.scalars().all())

    # =========================================================================
    # RESOLUTIONS
    # =========================================================================

    async def record_resolution(
        self,
        deal_id: str,
        previous_status: str,
        new_status: str,
        resolved_by: str | None = None,
    ) -> DealResolution:
        resolution = DealResolution(
            deal_id=deal_id,
            previous_status=previous_status,
            new_status=new_status,
            resolved_by=resolved_by,
        )
        async with session_scope(self._session_factory) as session:
            session.add(resolution)
        return resolution

    async def list_resolutions(self) -> list[DealResolution]:
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(DealResolution))
            return list(result.scalars().all())
