"""
Slack Routes: Events API webhook and workspace user search.

Webhook Contract:
- The signature is checked against the raw body before anything is parsed
- url_verification is answered with the challenge as plain text
- Everything else is acknowledged with 200 straight away; the reply is
  processed in the background
"""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from ..core.dependencies import EventProcessorDep, SettingsDep, ThreadServiceDep
from ..core.security import verify_slack_signature
from ..core.tasks import run_in_background
from ..schemas.slack import IgnoredEvent, SlackUserSearchResponse, UrlVerification, parse_slack_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slack", tags=["slack"])


@router.post("/webhook")
async def handle_slack_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: SettingsDep,
    processor: EventProcessorDep,
    x_slack_signature: Annotated[str | None, Header()] = None,
    x_slack_request_timestamp: Annotated[str | None, Header()] = None,
    x_slack_retry_num: Annotated[str | None, Header()] = None,
    x_slack_retry_reason: Annotated[str | None, Header()] = None,
):
    # Get raw body for signature verification
    body = await request.body()

    if not verify_slack_signature(
        body,
        x_slack_request_timestamp,
        x_slack_signature,
        settings.slack_signing_secret,
    ):
        logger.warning("Rejected Slack webhook with missing or invalid signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Slack signature",
        )

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Body is not valid JSON",
        )
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Body must be a JSON object",
        )

    event = parse_slack_payload(payload)

    if isinstance(event, UrlVerification):
        logger.info("Responding to Slack URL verification challenge")
        return PlainTextResponse(event.challenge)

    # A timed-out first delivery was still queued; any other retry means it did no work
    if x_slack_retry_num and x_slack_retry_reason == "http_timeout":
        logger.info(f"Ignoring Slack retry #{x_slack_retry_num} after a timed-out delivery")
        return PlainTextResponse("OK")
    if x_slack_retry_num:
        logger.info(f"Processing Slack retry #{x_slack_retry_num} ({x_slack_retry_reason or 'no reason'})")

    if isinstance(event, IgnoredEvent):
        logger.debug(f"Ignoring Slack event: {event.reason}")
        return PlainTextResponse("OK")

    background_tasks.add_task(
        run_in_background,
        f"slack_thread_reply:{event.thread_ts}",
        processor.process,
        event,
    )
    return PlainTextResponse("OK")


@router.get("/search-user", response_model=SlackUserSearchResponse)
async def search_user(
    thread_service: ThreadServiceDep,
    name: Annotated[str, Query(description="Case-insensitive part of a real or display name")] = "",
):
    users = await thread_service.search_users(name)
    return SlackUserSearchResponse(users=users)
