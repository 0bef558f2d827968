"""Exception hierarchy shared by services and integrations."""


class DealFollowupError(Exception):
    """Base exception for the application."""
    pass


class ConfigurationError(DealFollowupError):
    """A collaborator was used without its credentials or identifiers."""
    pass


class UpstreamError(DealFollowupError):
    """A remote API call failed or returned an unusable result."""
    pass


class SlackAPIError(UpstreamError):
    """Slack Web API returned ok=false or an HTTP error."""

    def __init__(self, method: str, error: str | None):
        self.method = method
        self.error = error or "unknown_error"
        super().__init__(f"Slack API {method} failed: {self.error}")


class SalesforceError(UpstreamError):
    """Salesforce authentication, query, or flow invocation failed."""
    pass


class AgentError(UpstreamError):
    """Agentforce session or message exchange failed."""
    pass


class StorageError(UpstreamError):
    """Object storage upload failed."""
    pass


class CorrelationError(DealFollowupError):
    """An inbound event could not be tied back to a deal."""
    pass
