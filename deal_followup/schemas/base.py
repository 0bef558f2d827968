"""Base schemas and common types for the API."""

from pydantic import BaseModel, ConfigDict


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class AppBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


class MessageResponse(AppBaseModel):
    """Plain acknowledgement."""

    message: str


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(AppBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(AppBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []
