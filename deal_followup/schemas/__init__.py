"""Deal Follow-up API Schemas.

Schemas are organized by domain:
- base: Common response envelopes
- deals: Stale deals, stakeholder mappings, notifier run summaries
- slack: Events API payload variants, user search
- metrics, dashboard: Read models
- files, agent: Upload and key-people endpoints
"""

from .agent import KeyPeopleRequest, KeyPeopleResponse
from .base import AppBaseModel, ErrorDetail, ErrorResponse, MessageResponse
from .dashboard import CountResponse, DashboardResponse
from .deals import (
    ActiveThreadResponse,
    AssignStakeholdersRequest,
    NotificationRunResult,
    ParsedDeal,
    StakeholderMappingIn,
)
from .files import StoredObject, UploadResponse
from .metrics import DealPerformanceMetric, StakeholderResponseRate
from .slack import (
    IgnoredEvent,
    SlackPayload,
    SlackUser,
    SlackUserSearchResponse,
    ThreadReply,
    UrlVerification,
    parse_slack_payload,
)

__all__ = [
    # Base
    "AppBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    # Deals
    "ActiveThreadResponse",
    "AssignStakeholdersRequest",
    "NotificationRunResult",
    "ParsedDeal",
    "StakeholderMappingIn",
    # Slack
    "IgnoredEvent",
    "SlackPayload",
    "SlackUser",
    "SlackUserSearchResponse",
    "ThreadReply",
    "UrlVerification",
    "parse_slack_payload",
    # Read models
    "CountResponse",
    "DashboardResponse",
    "DealPerformanceMetric",
    "StakeholderResponseRate",
    # Files & agent
    "KeyPeopleRequest",
    "KeyPeopleResponse",
    "StoredObject",
    "UploadResponse",
]
