"""Clients for the external systems: Slack, Salesforce, Agentforce, S3."""

from .agentforce import AgentforceClient
from .salesforce import Opportunity, SalesforceClient
from .slack import SlackClient
from .storage import S3Storage

__all__ = [
    "AgentforceClient",
    "Opportunity",
    "S3Storage",
    "SalesforceClient",
    "SlackClient",
]
