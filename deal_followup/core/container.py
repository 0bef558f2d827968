"""
Service container: every component wired once, explicitly.

The FastAPI lifespan builds a Services bundle and stores it on
`app.state.services`; routes read it through the dependencies in
`core/dependencies.py`. Tests construct the bundle with fakes instead.
"""

import logging
from dataclasses import dataclass, field

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from ..integrations import AgentforceClient, S3Storage, SalesforceClient, SlackClient
from ..services.dashboard import DashboardService
from ..services.metrics import MetricsService
from ..services.ports import ChatClient, CRMClient, KeyPeopleAgent, ObjectStore, ReplyAgent
from ..services.slack_events import SlackEventProcessor
from ..services.slack_service import SlackThreadService
from ..services.stale_deals import StaleDealNotifier
from ..services.store import CorrelationStore
from .config import Settings
from .database import build_engine, build_session_factory, close_db

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: CorrelationStore
    chat: ChatClient
    crm: CRMClient
    agent: ReplyAgent
    key_people_agent: KeyPeopleAgent
    object_store: ObjectStore
    thread_service: SlackThreadService
    notifier: StaleDealNotifier
    event_processor: SlackEventProcessor
    metrics: MetricsService
    dashboard: DashboardService
    engine: AsyncEngine | None = None
    http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    @classmethod
    def assemble(
        cls,
        settings: Settings,
        store: CorrelationStore,
        chat: ChatClient,
        crm: CRMClient,
        agent: ReplyAgent,
        key_people_agent: KeyPeopleAgent,
        object_store: ObjectStore,
        engine: AsyncEngine | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "Services":
        """Wire the services on top of the given collaborators."""
        thread_service = SlackThreadService(chat, store)
        metrics = MetricsService(store)
        return cls(
            settings=settings,
            store=store,
            chat=chat,
            crm=crm,
            agent=agent,
            key_people_agent=key_people_agent,
            object_store=object_store,
            thread_service=thread_service,
            notifier=StaleDealNotifier(
                store, crm, thread_service, flow_name=settings.stale_deals_flow_name
            ),
            event_processor=SlackEventProcessor(store, thread_service, agent, metrics),
            metrics=metrics,
            dashboard=DashboardService(store),
            engine=engine,
            http_client=http_client,
        )

    async def close(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
        if self.engine is not None:
            await close_db(self.engine)


def build_services(settings: Settings) -> Services:
    """Production wiring: real database, Slack, Salesforce, Agentforce and S3."""
    engine = build_engine(settings)
    store = CorrelationStore(build_session_factory(engine))

    # One connection pool shared by every HTTP collaborator
    http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    agentforce = AgentforceClient(settings, http_client)

    for name, enabled in (
        ("Slack", settings.slack_enabled),
        ("Salesforce", settings.salesforce_enabled),
        ("Agentforce", settings.agent_enabled),
        ("S3", settings.s3_enabled),
    ):
        if not enabled:
            logger.warning(f"{name} is not fully configured; calls to it will fail until it is")

    return Services.assemble(
        settings=settings,
        store=store,
        chat=SlackClient(settings, http_client),
        crm=SalesforceClient(settings, http_client),
        agent=agentforce,
        key_people_agent=agentforce,
        object_store=S3Storage(settings),
        engine=engine,
        http_client=http_client,
    )
