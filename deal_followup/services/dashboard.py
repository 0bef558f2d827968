"""Dashboard Service: read-only composition of store queries."""

import asyncio

from ..schemas.dashboard import DashboardResponse
from ..schemas.deals import ActiveThreadResponse, ParsedDeal
from .store import CorrelationStore


class DashboardService:
    def __init__(self, store: CorrelationStore):
        self.store = store

    async def get_latest_stale_deals(self) -> list[ParsedDeal]:
        return await self.store.get_latest_stale_deals()

    async def get_active_threads(self) -> list[ActiveThreadResponse]:
        threads = await self.store.list_active_threads()
        return [ActiveThreadResponse.model_validate(t) for t in threads]

    async def get_active_threads_count(self) -> int:
        return await self.store.count_active_threads()

    async def get_dashboard_data(self) -> DashboardResponse:
        """All three reads, concurrently. Any failure fails the call."""
        stale_deals, active_threads, count = await asyncio.gather(
            self.get_latest_stale_deals(),
            self.get_active_threads(),
            self.get_active_threads_count(),
        )
        return DashboardResponse(
            stale_deals=stale_deals,
            active_threads=active_threads,
            active_threads_count=count,
        )
