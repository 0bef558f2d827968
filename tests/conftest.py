"""Shared fixtures: a SQLite-backed store and fakes for every collaborator."""

from typing import Any

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from deal_followup.core.config import Settings
from deal_followup.core.container import Services
from deal_followup.core.database import build_session_factory
from deal_followup.core.exceptions import AgentError, SlackAPIError, StorageError
from deal_followup.integrations.salesforce import Opportunity
from deal_followup.models import Base
from deal_followup.schemas.files import StoredObject
from deal_followup.services.store import CorrelationStore

SIGNING_SECRET = "test-signing-secret"


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================


class FakeChat:
    """Records posts; returns sequential ts values."""

    def __init__(self, users: list[dict[str, Any]] | None = None):
        self.posts: list[dict[str, Any]] = []
        self.users = users or []
        self.fail_for: set[str] = set()
        self.fail_all = False
        self._counter = 0

    async def post_message(self, channel, text, *, blocks=None, thread_ts=None, metadata=None) -> str:
        if self.fail_all or channel in self.fail_for:
            raise SlackAPIError("chat.postMessage", "channel_not_found")
        self._counter += 1
        ts = f"1700000000.{self._counter:06d}"
        self.posts.append(
            {
                "channel": channel,
                "text": text,
                "blocks": blocks,
                "thread_ts": thread_ts,
                "metadata": metadata,
                "ts": ts,
            }
        )
        return ts

    async def list_users(self) -> list[dict[str, Any]]:
        return self.users


class FakeCRM:
    def __init__(self, flow_output: str | None = None, error: Exception | None = None):
        self.flow_output = flow_output
        self.error = error
        self.flow_calls: list[str] = []
        self.opportunities: list[Opportunity] = []

    async def invoke_flow(self, flow_api_name, inputs=None):
        self.flow_calls.append(flow_api_name)
        if self.error:
            raise self.error
        return self.flow_output

    async def fetch_active_records(self) -> list[Opportunity]:
        return self.opportunities


class FakeAgent:
    def __init__(self, reply: str = "Noted, I logged the update in Salesforce.", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.key_people_calls: list[dict[str, Any]] = []

    async def generate_reply(self, user, message, deal_id, thread_ts, deal_name=None) -> str:
        self.calls.append(
            {"user": user, "message": message, "deal_id": deal_id, "thread_ts": thread_ts, "deal_name": deal_name}
        )
        if self.error:
            raise self.error
        return self.reply

    async def get_key_people(self, s3_keys=None, deal_id=None, other_info=None) -> str:
        self.key_people_calls.append({"s3_keys": s3_keys, "deal_id": deal_id, "other_info": other_info})
        if self.error:
            raise self.error
        return "Jane Doe (CFO), John Roe (CTO)"


class FakeObjectStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.stored: list[tuple[str, str, bytes]] = []

    async def store(self, data: bytes, filename: str, mime_type: str) -> StoredObject:
        if self.fail:
            raise StorageError("bucket unavailable")
        key = f"key-{len(self.stored)}-{filename}"
        self.stored.append((filename, mime_type, data))
        return StoredObject(key=key, url=f"https://bucket.s3.us-east-1.amazonaws.com/{key}")


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SLACK_BOT_TOKEN="xoxb-test",
        SLACK_SIGNING_SECRET=SIGNING_SECRET,
        ALLOWED_ORIGINS="http://localhost:3000",
        environment="development",
    )


@pytest.fixture
async def engine(tmp_path):
    # File-backed so concurrent sessions (dashboard gather) get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine) -> CorrelationStore:
    return CorrelationStore(build_session_factory(engine))


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def crm() -> FakeCRM:
    return FakeCRM(flow_output="- Acme Corp (Stage: Negotiation)\n- Globex (Stage: Prospecting)")


@pytest.fixture
def agent() -> FakeAgent:
    return FakeAgent()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def services(settings, store, chat, crm, agent, object_store) -> Services:
    return Services.assemble(
        settings=settings,
        store=store,
        chat=chat,
        crm=crm,
        agent=agent,
        key_people_agent=agent,
        object_store=object_store,
    )


@pytest.fixture
def failing_agent() -> FakeAgent:
    return FakeAgent(error=AgentError("agent session failed"))
