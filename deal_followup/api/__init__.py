"""API routes for the deal follow-up assistant."""

from fastapi import APIRouter

from .agent import router as agent_router
from .dashboard import router as dashboard_router
from .deals import router as deals_router
from .files import router as files_router
from .metrics import router as metrics_router
from .slack import router as slack_router

# Main API router
api_router = APIRouter()

# Notification workflow
api_router.include_router(deals_router)
api_router.include_router(slack_router)

# Read paths
api_router.include_router(dashboard_router)
api_router.include_router(metrics_router)

# Collaborator proxies
api_router.include_router(files_router)
api_router.include_router(agent_router)

__all__ = ["api_router"]
