"""Dashboard read models."""

from pydantic import Field

from .base import AppBaseModel
from .deals import ActiveThreadResponse, ParsedDeal


class DashboardResponse(AppBaseModel):
    """Everything the dashboard landing page shows, fetched together."""

    stale_deals: list[ParsedDeal] = Field(..., serialization_alias="staleDeals")
    active_threads: list[ActiveThreadResponse] = Field(..., serialization_alias="activeThreads")
    active_threads_count: int = Field(..., serialization_alias="activeThreadsCount")


class CountResponse(AppBaseModel):
    count: int
