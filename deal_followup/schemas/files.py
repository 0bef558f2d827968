"""File upload schemas."""

from pydantic import Field

from .base import AppBaseModel


class StoredObject(AppBaseModel):
    """Locator of an uploaded object."""

    key: str
    url: str


class UploadResponse(AppBaseModel):
    message: str
    uploaded_files: list[StoredObject] = Field(..., serialization_alias="uploadedFiles")
