"""Business logic services for the deal follow-up assistant."""

from .cold_detector import detect_cold_deals, is_cold
from .dashboard import DashboardService
from .metrics import MetricsService, round2
from .rules import (
    APOLOGY_REPLY,
    StatusTransition,
    infer_resolution,
    infer_role_from_message,
    is_refusal,
    message_for_role,
)
from .slack_events import SlackEventProcessor
from .slack_service import SlackThreadService
from .stale_deals import StaleDealNotifier, parse_flow_output
from .store import CorrelationStore

__all__ = [
    # Persistence
    "CorrelationStore",
    # Workflows
    "StaleDealNotifier",
    "SlackThreadService",
    "SlackEventProcessor",
    # Read models
    "DashboardService",
    "MetricsService",
    # Rules
    "APOLOGY_REPLY",
    "StatusTransition",
    "infer_resolution",
    "infer_role_from_message",
    "is_refusal",
    "message_for_role",
    "parse_flow_output",
    "round2",
    "detect_cold_deals",
    "is_cold",
]
