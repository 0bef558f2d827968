"""Agent Routes: key-people extraction."""

import logging

from fastapi import APIRouter, HTTPException, status

from ..core.dependencies import KeyPeopleAgentDep
from ..schemas.agent import KeyPeopleRequest, KeyPeopleResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agent", tags=["agent"])

# Returned instead of an error when the agent call fails
KEY_PEOPLE_PLACEHOLDER = "PM, SalesRep1, SalesRep2"


@router.post("/get-key-people", response_model=KeyPeopleResponse)
async def get_key_people(body: KeyPeopleRequest, agent: KeyPeopleAgentDep):
    if body.is_empty:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide at least one of s3Keys, dealId or otherInfo.",
        )

    try:
        result = await agent.get_key_people(
            s3_keys=body.s3_keys,
            deal_id=body.deal_id,
            other_info=body.other_info,
        )
    except Exception as e:
        # TODO: surface agent failures as 502 once the web client handles errors here
        logger.error(f"Key-people agent failed, returning placeholder: {e}")
        result = KEY_PEOPLE_PLACEHOLDER

    return KeyPeopleResponse(result=result)
