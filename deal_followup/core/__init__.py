"""Core application utilities."""

from .config import Settings, get_settings
from .database import (
    build_engine,
    build_session_factory,
    close_db,
    init_db,
    session_scope,
    should_create_tables,
)
from .exceptions import (
    AgentError,
    ConfigurationError,
    CorrelationError,
    DealFollowupError,
    SalesforceError,
    SlackAPIError,
    StorageError,
    UpstreamError,
)
from .security import compute_slack_signature, verify_slack_signature
from .tasks import run_in_background

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "build_engine",
    "build_session_factory",
    "close_db",
    "init_db",
    "session_scope",
    "should_create_tables",
    # Errors
    "DealFollowupError",
    "ConfigurationError",
    "UpstreamError",
    "SlackAPIError",
    "SalesforceError",
    "AgentError",
    "StorageError",
    "CorrelationError",
    # Security
    "compute_slack_signature",
    "verify_slack_signature",
    # Background work
    "run_in_background",
]
