"""Metrics Routes."""

from fastapi import APIRouter

from ..core.dependencies import MetricsDep
from ..schemas.metrics import DealPerformanceMetric, StakeholderResponseRate

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/stakeholders/response-rates", response_model=dict[str, StakeholderResponseRate])
async def get_stakeholder_response_rates(metrics: MetricsDep):
    """Per stakeholder: notifications sent, answered, and the answer rate in percent."""
    return await metrics.get_stakeholder_response_rates()


@router.get("/stakeholders/deal-performance", response_model=dict[str, DealPerformanceMetric])
async def get_deal_performance_metrics(metrics: MetricsDep):
    """Per stakeholder: deals notified about, resolved, closed, revived."""
    return await metrics.get_deal_performance_metrics()
