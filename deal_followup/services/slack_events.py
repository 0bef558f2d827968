"""
Slack Event Processor: handles a stakeholder's reply inside a notification thread.

Processing Flow (runs after the webhook has been acknowledged):
1. Correlate the thread to a deal (thread table, then message metadata)
2. Record the reply against the notification that opened the thread
3. Infer a deal status change from the reply text
4. Generate an agent reply and post it into the thread

Each step is isolated. Nothing here raises to the caller except a failed
correlation, which drops the event.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from ..core.exceptions import CorrelationError
from ..schemas.slack import ThreadReply
from .metrics import MetricsService
from .ports import ReplyAgent
from .rules import APOLOGY_REPLY, infer_resolution, is_refusal
from .slack_service import SlackThreadService
from .store import CorrelationStore

logger = logging.getLogger(__name__)

METADATA_DEAL_NAME = "Unknown (from metadata)"


@dataclass
class DealContext:
    """What a reply was correlated to."""
    deal_id: str
    deal_name: str
    notification_id: UUID | None = None


class SlackEventProcessor:
    def __init__(
        self,
        store: CorrelationStore,
        thread_service: SlackThreadService,
        agent: ReplyAgent,
        metrics: MetricsService,
    ):
        self.store = store
        self.thread_service = thread_service
        self.agent = agent
        self.metrics = metrics

    async def process(self, reply: ThreadReply) -> None:
        logger.info(
            f"Processing thread reply from {reply.user} in {reply.channel} (thread {reply.thread_ts})"
        )
        try:
            context = await self.correlate(reply)
        except CorrelationError as e:
            logger.warning(f"Dropping event for thread {reply.thread_ts}: {e}")
            return

        response_recorded = await self._record_response(reply, context)
        if response_recorded:
            await self._record_resolution(reply, context)

        await self._reply(reply, context)

    # =========================================================================
    # CORRELATION
    # =========================================================================

    async def correlate(self, reply: ThreadReply) -> DealContext:
        """
        Find the deal (and notification, best effort) a reply belongs to.

        Raises:
            CorrelationError: no deal could be determined
        """
        try:
            thread = await self.store.get_active_thread(reply.thread_ts)
        except Exception as e:
            raise CorrelationError(f"thread lookup failed: {e}") from e

        if thread:
            context = DealContext(deal_id=thread.deal_id, deal_name=thread.deal_name)
            logger.info(f"Found thread mapping: {reply.thread_ts} -> Deal: {thread.deal_id}")
        elif reply.metadata_deal_id:
            context = DealContext(deal_id=reply.metadata_deal_id, deal_name=METADATA_DEAL_NAME)
            logger.info(f"No thread mapping for {reply.thread_ts}; using deal {reply.metadata_deal_id} from metadata")
        else:
            raise CorrelationError("no thread mapping and no deal id in message metadata")

        try:
            context.notification_id = await self.store.find_notification_id(reply.thread_ts)
        except Exception as e:
            logger.error(f"Notification lookup failed for thread {reply.thread_ts}: {e}")

        if context.notification_id is None:
            logger.warning(f"No notification found for thread {reply.thread_ts}")
        return context

    # =========================================================================
    # TRACKING
    # =========================================================================

    async def _record_response(self, reply: ThreadReply, context: DealContext) -> bool:
        if context.notification_id is None:
            return False
        try:
            await self.store.record_response(context.notification_id, reply.text, reply.ts)
            logger.info(f"Tracked response for notification {context.notification_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to track response for thread {reply.thread_ts}: {e}")
            return False

    async def _record_resolution(self, reply: ThreadReply, context: DealContext) -> None:
        transition = infer_resolution(reply.text)
        if transition is None:
            return
        try:
            await self.metrics.track_deal_resolution(
                context.deal_id,
                transition.previous_status.value,
                transition.new_status.value,
                resolved_by=reply.user,
            )
        except Exception as e:
            logger.error(f"Failed to track resolution for deal {context.deal_id}: {e}")

    # =========================================================================
    # REPLY
    # =========================================================================

    async def _reply(self, reply: ThreadReply, context: DealContext) -> None:
        try:
            answer = await self.agent.generate_reply(
                reply.user,
                reply.text,
                context.deal_id,
                reply.thread_ts,
                deal_name=context.deal_name,
            )
            if is_refusal(answer):
                logger.warning(f"Agent declined or returned nothing for deal {context.deal_id}; sending apology")
                answer = APOLOGY_REPLY
            await self.thread_service.reply_in_thread(reply.channel, reply.thread_ts, answer)
        except Exception as e:
            logger.error(f"Failed to reply in thread {reply.thread_ts}: {e}")
            try:
                await self.thread_service.reply_in_thread(reply.channel, reply.thread_ts, APOLOGY_REPLY)
            except Exception as fallback_error:
                logger.error(f"Failed to send fallback reply to thread {reply.thread_ts}: {fallback_error}")
