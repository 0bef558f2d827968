"""
Slack Thread Service: outbound stakeholder messages and the thread bookkeeping
that lets replies be correlated back to deals.
"""

import logging

from ..schemas.slack import SlackUser
from .ports import ChatClient
from .rules import infer_role_from_message
from .store import CorrelationStore

logger = logging.getLogger(__name__)

STALE_DEAL_EVENT_TYPE = "stale_deal_notice"


# =============================================================================
# BLOCK KIT BUILDERS
# =============================================================================


def stale_deal_blocks(text: str, deal_id: str, deal_name: str) -> list[dict]:
    """Notification body plus a context line naming the deal."""
    return [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": text},
        },
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"Related Deal: *{deal_name}* (ID: {deal_id})",
                }
            ],
        },
    ]


# =============================================================================
# SERVICE
# =============================================================================


class SlackThreadService:
    """Sends stakeholder DMs and records the thread each one opens."""

    def __init__(self, chat: ChatClient, store: CorrelationStore):
        self.chat = chat
        self.store = store

    async def send_to_stakeholder(
        self,
        user_id: str,
        text: str,
        deal_id: str,
        deal_name: str,
    ) -> str:
        """
        DM a stakeholder about a deal and return the thread ts.

        Flow:
        1. Post the message (raises on failure; nothing is recorded)
        2. Upsert the thread -> deal mapping
        3. Record the notification with a role inferred from the text

        Steps 2 and 3 are independent; a failure in either is logged only.
        """
        thread_ts = await self.chat.post_message(
            user_id,
            text,
            blocks=stale_deal_blocks(text, deal_id, deal_name),
            metadata={
                "event_type": STALE_DEAL_EVENT_TYPE,
                "event_payload": {"deal_id": deal_id},
            },
        )
        logger.info(f"Message sent to {user_id} for deal {deal_id}. TS: {thread_ts}")

        try:
            # For DMs the channel is the user id
            await self.store.upsert_active_thread(thread_ts, deal_id, deal_name, channel_id=user_id)
            logger.info(f"Stored thread mapping: {thread_ts} -> Deal: {deal_id}")
        except Exception as e:
            logger.error(f"Failed to upsert thread mapping for {thread_ts}: {e}")

        stakeholder_role = infer_role_from_message(text)
        try:
            await self.store.record_notification(
                stakeholder_id=user_id,
                stakeholder_role=stakeholder_role.value,
                deal_id=deal_id,
                message_ts=thread_ts,
            )
            logger.info(f"Tracked notification to {user_id} ({stakeholder_role.value}) for deal {deal_id}")
        except Exception as e:
            logger.error(f"Failed to track notification for {thread_ts}: {e}")

        return thread_ts

    async def reply_in_thread(self, channel_id: str, thread_ts: str, text: str) -> None:
        await self.chat.post_message(channel_id, text, thread_ts=thread_ts)
        logger.info(f"Sent reply to thread {thread_ts} in channel {channel_id}")

    async def search_users(self, name_query: str) -> list[SlackUser]:
        """
        Workspace members whose real or display name contains `name_query`.

        Fetches the whole member list and filters locally; bots and deactivated
        users are skipped.
        """
        if not name_query or not name_query.strip():
            logger.warning("Search query is empty, returning no users.")
            return []

        query = name_query.strip().lower()
        members = await self.chat.list_users()

        matches: list[SlackUser] = []
        for member in members:
            if member.get("is_bot") or member.get("deleted") or not member.get("id"):
                continue
            profile = member.get("profile") or {}
            real_name = member.get("real_name") or profile.get("real_name") or ""
            display_name = profile.get("display_name") or ""
            if query in real_name.lower() or query in display_name.lower():
                matches.append(
                    SlackUser(
                        id=member["id"],
                        name=real_name or display_name or member.get("name") or "Unknown Name",
                    )
                )

        logger.info(f"Found {len(matches)} users matching {name_query!r} among {len(members)} members")
        return matches
