"""Collaborator interfaces the services depend on.

The concrete clients in `integrations/` satisfy these structurally; tests pass
in-memory fakes.
"""

from typing import Any, Protocol

from ..integrations.salesforce import Opportunity
from ..schemas.files import StoredObject


class ChatClient(Protocol):
    async def post_message(
        self,
        channel: str,
        text: str,
        *,
        blocks: list[dict] | None = None,
        thread_ts: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str: ...

    async def list_users(self) -> list[dict[str, Any]]: ...


class CRMClient(Protocol):
    async def fetch_active_records(self) -> list[Opportunity]: ...

    async def invoke_flow(self, flow_api_name: str, inputs: dict[str, Any] | None = None) -> str | None: ...


class ReplyAgent(Protocol):
    async def generate_reply(
        self,
        user: str | None,
        message: str,
        deal_id: str,
        thread_ts: str,
        deal_name: str | None = None,
    ) -> str: ...


class ObjectStore(Protocol):
    async def store(self, data: bytes, filename: str, mime_type: str) -> StoredObject: ...


class KeyPeopleAgent(Protocol):
    async def get_key_people(
        self,
        s3_keys: list[str] | None = None,
        deal_id: str | None = None,
        other_info: str | None = None,
    ) -> str: ...
