"""Deal Routes: stale-deal notification trigger and stakeholder mappings."""

import logging

from fastapi import APIRouter, BackgroundTasks, status

from ..core.dependencies import NotifierDep, StoreDep
from ..core.tasks import run_in_background
from ..schemas.base import MessageResponse
from ..schemas.deals import AssignStakeholdersRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deals", tags=["deals"])


@router.post(
    "/notify-stale",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_stale_deal_notifications(
    background_tasks: BackgroundTasks,
    notifier: NotifierDep,
):
    """Start a notification run; completion is only visible in the logs."""
    logger.info("Received request to trigger stale deal notifications")
    background_tasks.add_task(
        run_in_background,
        "notify_stakeholders_for_stale_deals",
        notifier.notify_stakeholders_for_stale_deals,
    )
    return MessageResponse(message="Stale deal notification process initiated.")


@router.get("/stakeholders", response_model=dict[str, str])
async def get_stakeholders(store: StoreDep):
    """Current role -> Slack user id map."""
    return await store.get_stakeholders()


@router.post("/stakeholders/assign", response_model=MessageResponse)
async def assign_stakeholders(body: AssignStakeholdersRequest, store: StoreDep):
    """Insert or overwrite role assignments."""
    await store.upsert_stakeholders(body.mappings)
    logger.info(f"Assigned {len(body.mappings)} stakeholder mappings")
    return MessageResponse(message="Stakeholders assigned successfully.")
