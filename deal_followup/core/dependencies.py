"""FastAPI dependencies resolving components from the service container."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from ..services.dashboard import DashboardService
from ..services.metrics import MetricsService
from ..services.ports import KeyPeopleAgent, ObjectStore
from ..services.slack_events import SlackEventProcessor
from ..services.slack_service import SlackThreadService
from ..services.stale_deals import StaleDealNotifier
from ..services.store import CorrelationStore
from .config import Settings
from .container import Services


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services are not initialized",
        )
    return services


ServicesDep = Annotated[Services, Depends(get_services)]


def get_app_settings(services: ServicesDep) -> Settings:
    return services.settings


def get_store(services: ServicesDep) -> CorrelationStore:
    return services.store


def get_notifier(services: ServicesDep) -> StaleDealNotifier:
    return services.notifier


def get_thread_service(services: ServicesDep) -> SlackThreadService:
    return services.thread_service


def get_event_processor(services: ServicesDep) -> SlackEventProcessor:
    return services.event_processor


def get_metrics_service(services: ServicesDep) -> MetricsService:
    return services.metrics


def get_dashboard_service(services: ServicesDep) -> DashboardService:
    return services.dashboard


def get_object_store(services: ServicesDep) -> ObjectStore:
    return services.object_store


def get_key_people_agent(services: ServicesDep) -> KeyPeopleAgent:
    return services.key_people_agent


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StoreDep = Annotated[CorrelationStore, Depends(get_store)]
NotifierDep = Annotated[StaleDealNotifier, Depends(get_notifier)]
ThreadServiceDep = Annotated[SlackThreadService, Depends(get_thread_service)]
EventProcessorDep = Annotated[SlackEventProcessor, Depends(get_event_processor)]
MetricsDep = Annotated[MetricsService, Depends(get_metrics_service)]
DashboardDep = Annotated[DashboardService, Depends(get_dashboard_service)]
ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]
KeyPeopleAgentDep = Annotated[KeyPeopleAgent, Depends(get_key_people_agent)]
