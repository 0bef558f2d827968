"""Slack Web API client.

Talks to the Web API directly over httpx (no SDK dependency). Every method
raises SlackAPIError when Slack answers `ok: false`, so callers decide whether
a failure is fatal.
"""

import logging
from typing import Any

import httpx

from ..core.config import Settings
from ..core.exceptions import ConfigurationError, SlackAPIError

logger = logging.getLogger(__name__)


class SlackClient:
    """Bot-token client for the handful of Web API methods we use."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        self._token = settings.slack_bot_token
        self._api_base = settings.slack_api_base.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    async def close(self):
        """Close the HTTP client."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise ConfigurationError("Missing SLACK_BOT_TOKEN environment variable")
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json; charset=utf-8",
        }

    async def _call(self, method: str, payload: dict[str, Any], http_method: str = "POST") -> dict[str, Any]:
        url = f"{self._api_base}/{method}"
        try:
            if http_method == "GET":
                response = await self.http_client.get(url, headers=self._headers(), params=payload)
            else:
                response = await self.http_client.post(url, headers=self._headers(), json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Slack API {method} HTTP error: {e}")
            raise SlackAPIError(method, str(e)) from e

        data = response.json()
        if not data.get("ok"):
            logger.error(f"Slack API error on {method}: {data.get('error')}")
            raise SlackAPIError(method, data.get("error"))
        return data

    # =========================================================================
    # MESSAGING
    # =========================================================================

    async def post_message(
        self,
        channel: str,
        text: str,
        *,
        blocks: list[dict] | None = None,
        thread_ts: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Post a message and return its `ts` (the thread id of a root message)."""
        payload: dict[str, Any] = {"channel": channel, "text": text}
        if blocks:
            payload["blocks"] = blocks
        if thread_ts:
            payload["thread_ts"] = thread_ts
        if metadata:
            payload["metadata"] = metadata

        data = await self._call("chat.postMessage", payload)
        ts = data.get("ts")
        if not ts:
            raise SlackAPIError("chat.postMessage", "missing_ts")
        return ts

    async def post_webhook(self, webhook_url: str, payload: dict[str, Any]) -> None:
        """Post to an incoming webhook URL (no bot token involved)."""
        response = await self.http_client.post(webhook_url, json=payload)
        if response.status_code >= 400:
            raise SlackAPIError("incoming-webhook", f"HTTP {response.status_code}: {response.text[:200]}")

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(self, page_size: int = 200) -> list[dict[str, Any]]:
        """Fetch every workspace member, following pagination cursors."""
        members: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            params: dict[str, Any] = {"limit": page_size}
            if cursor:
                params["cursor"] = cursor
            data = await self._call("users.list", params, http_method="GET")
            members.extend(data.get("members", []))

            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break

        return members
