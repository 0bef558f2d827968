"""Agent endpoint schemas."""

from pydantic import Field

from .base import AppBaseModel


class KeyPeopleRequest(AppBaseModel):
    """Context handed to the key-people agent; at least one field is required."""

    s3_keys: list[str] | None = Field(default=None, alias="s3Keys")
    deal_id: str | None = Field(default=None, alias="dealId")
    other_info: str | None = Field(default=None, alias="otherInfo")

    @property
    def is_empty(self) -> bool:
        return not (self.s3_keys or self.deal_id or self.other_info)


class KeyPeopleResponse(AppBaseModel):
    result: str
