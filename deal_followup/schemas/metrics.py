"""Metrics response schemas."""

from .base import AppBaseModel


class StakeholderResponseRate(AppBaseModel):
    """How often a stakeholder answered the notifications sent to them."""

    stakeholder_id: str
    stakeholder_role: str
    sent: int
    responded: int
    rate: float  # Percentage, two decimals


class DealPerformanceMetric(AppBaseModel):
    """Outcomes on the deals a stakeholder was notified about."""

    stakeholder_id: str
    stakeholder_role: str
    total_deals: int
    deals_responded: int
    deals_closed: int
    deals_revived: int  # Stalled -> Active/Negotiation
    conversion_rate: float  # Percentage, two decimals
