"""Schemas for stale deals and stakeholder mappings."""

from datetime import datetime

from pydantic import Field, field_validator

from .base import AppBaseModel


class ParsedDeal(AppBaseModel):
    """
    A deal flagged by the stale-deal workflow.

    `id` equals `name` when it comes from the workflow listing, which has no
    stable identifier. Two deals sharing a name collide.
    """

    id: str
    name: str


class StakeholderMappingIn(AppBaseModel):
    """One role assignment."""

    role: str = Field(..., min_length=1, description="Role key, e.g. PM or SalesRep1")
    slack_user_id: str = Field(..., min_length=1, description="Slack user ID, e.g. U123ABC")
    full_name: str | None = Field(default=None, description="Optional display name")

    @field_validator("role", "slack_user_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class AssignStakeholdersRequest(AppBaseModel):
    """Body of POST /deals/stakeholders/assign."""

    mappings: list[StakeholderMappingIn]

    @field_validator("mappings")
    @classmethod
    def unique_roles(cls, v: list[StakeholderMappingIn]) -> list[StakeholderMappingIn]:
        roles = [m.role for m in v]
        duplicates = sorted({r for r in roles if roles.count(r) > 1})
        if duplicates:
            raise ValueError(f"roles assigned more than once: {', '.join(duplicates)}")
        return v


class ActiveThreadResponse(AppBaseModel):
    """A notification thread bound to a deal."""

    thread_ts: str
    deal_id: str
    deal_name: str
    channel_id: str
    created_at: datetime


class NotificationRunResult(AppBaseModel):
    """Summary of one notifier run."""

    stakeholders: int = 0
    deals: int = 0
    sent: int = 0
    failed: int = 0
    used_cache: bool = False
    aborted: bool = False
