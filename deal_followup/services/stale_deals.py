"""
Stale Deal Notifier: asks the stakeholders behind each stalled deal for an update.

Run Flow:
1. Load the role -> Slack user map (empty map aborts the run)
2. Invoke the CRM workflow and parse its text listing into deals
3. On success replace the cached deal list; on failure read the cache instead
4. DM every stakeholder about every deal, stakeholders outer, deals inner

One failed send never stops the batch.
"""

import logging
import re

from ..schemas.deals import NotificationRunResult, ParsedDeal
from .ports import CRMClient
from .rules import message_for_role
from .slack_service import SlackThreadService
from .store import CorrelationStore

logger = logging.getLogger(__name__)

DEFAULT_FLOW_NAME = "GetColdOpportunities"

# "- Acme Corp (Stage: Negotiation)" -> "Acme Corp"
DEAL_LINE_PATTERN = re.compile(r"^- (.*?)\s+\(.*\)")


def parse_flow_output(output: str) -> list[ParsedDeal]:
    """
    Parse the workflow's free-text listing into deals.

    The listing carries no record ids, so the deal name doubles as its id.
    Lines that don't match the expected shape are dropped.
    """
    deals: list[ParsedDeal] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        match = DEAL_LINE_PATTERN.match(line)
        if not match:
            logger.warning(f"Could not parse deal line from workflow output: {line!r}")
            continue
        name = match.group(1).strip()
        if not name:
            logger.warning(f"Empty deal name in workflow line: {line!r}")
            continue
        deals.append(ParsedDeal(id=name, name=name))

    if deals:
        logger.warning(
            f"Parsed {len(deals)} deals; using deal names as ids since the workflow returns no record ids"
        )
    return deals


class StaleDealNotifier:
    """Fetches stale deals and notifies the mapped stakeholders about them."""

    def __init__(
        self,
        store: CorrelationStore,
        crm: CRMClient,
        thread_service: SlackThreadService,
        flow_name: str = DEFAULT_FLOW_NAME,
    ):
        self.store = store
        self.crm = crm
        self.thread_service = thread_service
        self.flow_name = flow_name

    async def _load_deals(self, result: NotificationRunResult) -> list[ParsedDeal] | None:
        """Fresh deals from the CRM, else the cached list, else None."""
        try:
            output = await self.crm.invoke_flow(self.flow_name)
            if not isinstance(output, str):
                raise ValueError(f"Workflow {self.flow_name} returned no text output")

            deals = parse_flow_output(output)
            await self.store.replace_stale_deals(deals)
            logger.info(f"Refreshed stale deal cache with {len(deals)} deals")
            return deals
        except Exception as e:
            logger.error(f"Failed to fetch stale deals from CRM, falling back to cache: {e}")

        try:
            deals = await self.store.get_latest_stale_deals()
        except Exception as e:
            logger.error(f"Failed to read cached stale deals, aborting run: {e}")
            return None

        result.used_cache = True
        logger.info(f"Using {len(deals)} cached stale deals")
        return deals

    async def notify_stakeholders_for_stale_deals(self) -> NotificationRunResult:
        result = NotificationRunResult()

        try:
            stakeholders = await self.store.get_stakeholders()
        except Exception as e:
            logger.error(f"Failed to load stakeholder mappings: {e}")
            result.aborted = True
            return result

        if not stakeholders:
            logger.warning("No stakeholder mappings configured, skipping notification run.")
            result.aborted = True
            return result
        result.stakeholders = len(stakeholders)

        deals = await self._load_deals(result)
        if deals is None:
            result.aborted = True
            return result

        result.deals = len(deals)
        if not deals:
            logger.info("No stale deals found, nothing to notify.")
            return result

        for role, user_id in stakeholders.items():
            for deal in deals:
                text = message_for_role(role, deal.name)
                try:
                    await self.thread_service.send_to_stakeholder(user_id, text, deal.id, deal.name)
                    result.sent += 1
                except Exception as e:
                    result.failed += 1
                    logger.error(f"Failed to notify {role} ({user_id}) about deal {deal.id}: {e}")

        logger.info(
            f"Stale deal notification run complete: {result.sent} sent, {result.failed} failed "
            f"across {result.stakeholders} stakeholders and {result.deals} deals"
        )
        return result
