"""SQLAlchemy ORM Models for the deal follow-up store."""

from .base import Base, UUIDMixin
from .models import (
    # Enums
    DealStatus,
    StakeholderRole,
    # Stakeholders
    StakeholderMapping,
    # Deals & threads
    ActiveSlackThread,
    LatestStaleDeal,
    # Tracking
    DealResolution,
    StakeholderNotification,
    StakeholderResponse,
)

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    # Enums
    "DealStatus",
    "StakeholderRole",
    # Stakeholders
    "StakeholderMapping",
    # Deals & threads
    "LatestStaleDeal",
    "ActiveSlackThread",
    # Tracking
    "StakeholderNotification",
    "StakeholderResponse",
    "DealResolution",
]
