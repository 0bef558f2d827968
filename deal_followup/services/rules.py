"""
Text rules: role message templates and keyword inference.

All free-text heuristics live here as ordered rule tables evaluated by pure
functions. First matching rule wins. Replacing a table (or the function behind
it) with a real classifier does not touch the services that call them.
"""

import re
from dataclasses import dataclass

from ..models import DealStatus, StakeholderRole

# =============================================================================
# OUTBOUND MESSAGES
# =============================================================================

PM_TEMPLATE = "Deal: *{name}* has stalled. Any obstacles from a product perspective?"
SALES_REP_TEMPLATE = (
    "Following up on *{name}*: Did you manage to connect? If not, what's holding you back?"
)
DEFAULT_TEMPLATE = "Attention needed for deal: *{name}*. Status update requested."

ROLE_TEMPLATES: dict[str, str] = {
    "pm": PM_TEMPLATE,
    "salesrep": SALES_REP_TEMPLATE,
    "salesrep1": SALES_REP_TEMPLATE,
    "salesrep2": SALES_REP_TEMPLATE,
}


def message_for_role(role: str, deal_name: str) -> str:
    """Render the notification text for a stakeholder role (case-insensitive)."""
    template = ROLE_TEMPLATES.get(role.lower(), DEFAULT_TEMPLATE)
    return template.format(name=deal_name)


# Ordered: (role, substrings). Reads our own templates back, see message_for_role.
ROLE_INFERENCE_RULES: list[tuple[StakeholderRole, tuple[str, ...]]] = [
    (StakeholderRole.PM, ("product perspective",)),
    (StakeholderRole.SALES_REP, ("manage to connect", "holding you back")),
]


def infer_role_from_message(text: str) -> StakeholderRole:
    """Coarse role of the recipient of an outbound notification."""
    lowered = text.lower()
    for role, needles in ROLE_INFERENCE_RULES:
        if any(needle in lowered for needle in needles):
            return role
    return StakeholderRole.UNKNOWN


# =============================================================================
# INBOUND REPLIES
# =============================================================================


@dataclass(frozen=True)
class StatusTransition:
    previous_status: DealStatus
    new_status: DealStatus


# Ordered: first rule whose keywords appear in the reply wins
RESOLUTION_RULES: list[tuple[tuple[str, ...], StatusTransition]] = [
    (("closed", "won"), StatusTransition(DealStatus.STALLED, DealStatus.CLOSED_WON)),
    (("progress", "moving forward", "active"), StatusTransition(DealStatus.STALLED, DealStatus.ACTIVE)),
]


def infer_resolution(reply_text: str) -> StatusTransition | None:
    """Deal status change implied by a stakeholder reply, if any."""
    lowered = reply_text.lower()
    for keywords, transition in RESOLUTION_RULES:
        if any(keyword in lowered for keyword in keywords):
            return transition
    return None


APOLOGY_REPLY = "Sorry, I encountered an issue trying to process your message."

_REFUSAL_PATTERN = re.compile(
    r"\b(sorry|apologi[sz]e)\b.{0,40}\b(can(?:'|’|no)?t|cannot|unable to)\b.{0,20}\b(assist|help)\b",
    re.IGNORECASE | re.DOTALL,
)


def is_refusal(reply_text: str) -> bool:
    """True when an agent reply is empty or declines to help."""
    if not reply_text or not reply_text.strip():
        return True
    return bool(_REFUSAL_PATTERN.search(reply_text))
