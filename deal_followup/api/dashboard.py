"""Dashboard Routes."""

from fastapi import APIRouter

from ..core.dependencies import DashboardDep
from ..schemas.dashboard import CountResponse, DashboardResponse
from ..schemas.deals import ActiveThreadResponse, ParsedDeal

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse, response_model_by_alias=True)
async def get_dashboard(dashboard: DashboardDep):
    return await dashboard.get_dashboard_data()


@router.get("/latest-stale-deals", response_model=list[ParsedDeal])
async def get_latest_stale_deals(dashboard: DashboardDep):
    return await dashboard.get_latest_stale_deals()


@router.get("/active-threads", response_model=list[ActiveThreadResponse])
async def get_active_threads(dashboard: DashboardDep):
    return await dashboard.get_active_threads()


@router.get("/active-threads/count", response_model=CountResponse)
async def get_active_threads_count(dashboard: DashboardDep):
    return CountResponse(count=await dashboard.get_active_threads_count())
