"""Slack Events API payloads, narrowed into a closed set of variants.

Every webhook body is parsed once, at the boundary, into exactly one of:

- UrlVerification: the endpoint handshake; echo `challenge`.
- ThreadReply: a human reply inside a thread we can answer in.
- IgnoredEvent: anything else, with the reason it was dropped.

Downstream code only ever sees ThreadReply.
"""

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from .base import AppBaseModel


class UrlVerification(AppBaseModel):
    kind: Literal["url_verification"] = "url_verification"
    challenge: str


class ThreadReply(AppBaseModel):
    kind: Literal["thread_reply"] = "thread_reply"
    text: str
    user: str | None = None
    ts: str
    thread_ts: str
    channel: str
    metadata_deal_id: str | None = None


class IgnoredEvent(AppBaseModel):
    kind: Literal["ignored"] = "ignored"
    reason: str


SlackPayload = Union[UrlVerification, ThreadReply, IgnoredEvent]


class _MessageMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event_type: str | None = None
    event_payload: dict[str, Any] | None = None


class _MessageEvent(BaseModel):
    """Raw `event` object of an event_callback; fields Slack may omit are optional."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    subtype: str | None = None
    bot_id: str | None = None
    text: str | None = None
    user: str | None = None
    ts: str | None = None
    thread_ts: str | None = None
    channel: str | None = None
    metadata: _MessageMetadata | None = None


def parse_slack_payload(payload: dict[str, Any]) -> SlackPayload:
    """Narrow a decoded Events API body into one of the payload variants."""
    payload_type = payload.get("type")

    if payload_type == "url_verification":
        challenge = payload.get("challenge")
        if not isinstance(challenge, str):
            return IgnoredEvent(reason="url_verification without challenge")
        return UrlVerification(challenge=challenge)

    raw_event = payload.get("event")
    if not isinstance(raw_event, dict):
        return IgnoredEvent(reason=f"no event in payload type {payload_type or 'unknown'}")

    try:
        event = _MessageEvent.model_validate(raw_event)
    except ValidationError as e:
        return IgnoredEvent(reason=f"malformed event: {e.error_count()} error(s)")

    if event.type != "message":
        return IgnoredEvent(reason=f"event type {event.type or 'unknown'}")
    if event.bot_id or event.subtype == "bot_message":
        return IgnoredEvent(reason="bot message")
    if event.subtype:
        return IgnoredEvent(reason=f"message subtype {event.subtype}")
    if not event.thread_ts:
        return IgnoredEvent(reason="non-threaded message")
    if not event.channel:
        return IgnoredEvent(reason="missing channel id")

    metadata_deal_id = None
    if event.metadata and event.metadata.event_payload:
        deal_id = event.metadata.event_payload.get("deal_id")
        if deal_id:
            metadata_deal_id = str(deal_id)

    return ThreadReply(
        text=event.text or "",
        user=event.user,
        ts=event.ts or event.thread_ts,
        thread_ts=event.thread_ts,
        channel=event.channel,
        metadata_deal_id=metadata_deal_id,
    )


# =============================================================================
# USER SEARCH
# =============================================================================


class SlackUser(AppBaseModel):
    id: str
    name: str


class SlackUserSearchResponse(AppBaseModel):
    users: list[SlackUser]
