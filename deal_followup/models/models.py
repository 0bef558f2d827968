"""SQLAlchemy ORM Models for the deal follow-up store.

Table and column names match the tables the Slack/CRM workflow has always
written to, so an existing database can be pointed at directly.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, created_now_column, utcnow


# =============================================================================
# ENUMS
# =============================================================================


class DealStatus(str, PyEnum):
    """Deal statuses recorded on resolutions."""
    STALLED = "Stalled"
    ACTIVE = "Active"
    NEGOTIATION = "Negotiation"
    CLOSED_WON = "Closed Won"


class StakeholderRole(str, PyEnum):
    """Coarse role recorded on a notification, inferred from its text."""
    PM = "PM"
    SALES_REP = "SalesRep"
    UNKNOWN = "Unknown"


# =============================================================================
# STAKEHOLDERS
# =============================================================================


class StakeholderMapping(Base):
    """Who currently holds a role (e.g. 'PM', 'SalesRep1')."""

    __tablename__ = "stakeholder_mapping"

    role: Mapped[str] = mapped_column(Text, primary_key=True)
    slack_user_id: Mapped[str] = mapped_column(Text, nullable=False)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = created_now_column(onupdate=utcnow)


# =============================================================================
# DEALS & THREADS
# =============================================================================


class LatestStaleDeal(Base, UUIDMixin):
    """
    Cached output of the last successful stale-deal workflow run.

    `deal_id` holds the deal name: the workflow cannot return real ids.
    """

    __tablename__ = "latest_stale_deals"

    deal_id: Mapped[str] = mapped_column(Text, nullable=False)
    deal_name: Mapped[str] = mapped_column(Text, nullable=False)
    identified_at: Mapped[datetime] = created_now_column()


class ActiveSlackThread(Base):
    """Binds the root message of a notification thread to its deal."""

    __tablename__ = "active_slack_threads"

    thread_ts: Mapped[str] = mapped_column(String(64), primary_key=True)
    deal_id: Mapped[str] = mapped_column(Text, nullable=False)
    deal_name: Mapped[str] = mapped_column(Text, nullable=False)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = created_now_column()


# =============================================================================
# TRACKING
# =============================================================================


class StakeholderNotification(Base, UUIDMixin):
    """One outbound notification; `message_ts` is the thread correlation key."""

    __tablename__ = "stakeholder_notifications"

    stakeholder_id: Mapped[str] = mapped_column(Text, nullable=False)
    stakeholder_role: Mapped[str] = mapped_column(Text, nullable=False)
    deal_id: Mapped[str] = mapped_column(Text, nullable=False)
    message_ts: Mapped[str] = mapped_column(String(64), nullable=False)
    sent_at: Mapped[datetime] = created_now_column()

    __table_args__ = (
        Index("idx_stakeholder_notifications_message_ts", "message_ts"),
        Index("idx_stakeholder_notifications_stakeholder", "stakeholder_id"),
    )


class StakeholderResponse(Base, UUIDMixin):
    """A threaded reply tied to the notification it answers."""

    __tablename__ = "stakeholder_responses"

    notification_id: Mapped[UUID] = mapped_column(
        ForeignKey("stakeholder_notifications.id"),
        nullable=False,
        index=True,
    )
    response_text: Mapped[str] = mapped_column(Text, nullable=False)
    response_ts: Mapped[str] = mapped_column(String(64), nullable=False)
    responded_at: Mapped[datetime] = created_now_column()


class DealResolution(Base, UUIDMixin):
    """Append-only status transition for a deal."""

    __tablename__ = "deal_resolutions"

    deal_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    previous_status: Mapped[str] = mapped_column(Text, nullable=False)
    new_status: Mapped[str] = mapped_column(Text, nullable=False)
    resolved_by: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime] = created_now_column()
