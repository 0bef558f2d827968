"""Salesforce REST client.

Authenticates with the OAuth 2.0 JWT bearer flow (RS256 assertion signed with
the connected app's private key) and exposes the two calls the notifier needs:
listing open opportunities and invoking an autolaunched Flow.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import jwt

from ..core.config import Settings
from ..core.exceptions import ConfigurationError, SalesforceError

logger = logging.getLogger(__name__)

ACTIVE_OPPORTUNITIES_SOQL = (
    "SELECT Id, Name, StageName, LastActivityDate, LastModifiedDate, OwnerId "
    "FROM Opportunity WHERE IsClosed = false"
)


@dataclass
class Opportunity:
    """An open CRM opportunity."""
    id: str
    name: str
    stage: str | None
    last_activity_at: datetime | None
    last_modified_at: datetime
    owner_id: str | None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Opportunity":
        return cls(
            id=record["Id"],
            name=record["Name"],
            stage=record.get("StageName"),
            last_activity_at=_parse_sf_datetime(record.get("LastActivityDate")),
            last_modified_at=_parse_sf_datetime(record["LastModifiedDate"]),
            owner_id=record.get("OwnerId"),
        )


def _parse_sf_datetime(value: str | None) -> datetime | None:
    """Parse Salesforce date (2024-01-31) and datetime (2024-01-31T10:00:00.000+0000) values."""
    if not value:
        return None
    if len(value) == 10:
        return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
    # Salesforce emits +0000 without a colon
    if value[-5] in "+-" and value[-3] != ":":
        value = f"{value[:-2]}:{value[-2:]}"
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class SalesforceClient:
    """Connected-app client using the JWT bearer grant."""

    JWT_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None):
        self.settings = settings
        self.http_client = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._access_token: str | None = None
        self._instance_url: str | None = None
        self._token_expires: datetime | None = None

    async def close(self):
        await self.http_client.aclose()

    # =========================================================================
    # AUTH
    # =========================================================================

    def _private_key(self) -> str:
        if self.settings.sf_jwt_private_key:
            # Keys pasted into env vars usually carry escaped newlines
            return self.settings.sf_jwt_private_key.replace("\\n", "\n")
        if self.settings.sf_jwt_key_path:
            return Path(self.settings.sf_jwt_key_path).read_text(encoding="utf-8")
        raise ConfigurationError("Missing SF_JWT_KEY_PATH or SF_JWT_PRIVATE_KEY")

    def build_assertion(self, now: datetime | None = None) -> str:
        """Sign the short-lived JWT presented to the token endpoint."""
        if not self.settings.sf_client_id or not self.settings.sf_username:
            raise ConfigurationError("Missing SF_CLIENT_ID or SF_USERNAME")

        now = now or datetime.now(timezone.utc)
        claim = {
            "iss": self.settings.sf_client_id,
            "sub": self.settings.sf_username,
            "aud": self.settings.sf_login_url,
            "exp": int((now + timedelta(minutes=3)).timestamp()),
        }
        return jwt.encode(claim, self._private_key(), algorithm="RS256")

    async def authenticate(self) -> None:
        """Exchange a signed assertion for an access token and instance URL."""
        token_url = f"{self.settings.sf_login_url.rstrip('/')}/services/oauth2/token"
        response = await self.http_client.post(
            token_url,
            data={"grant_type": self.JWT_GRANT_TYPE, "assertion": self.build_assertion()},
        )
        if response.status_code != 200:
            logger.error(f"Salesforce JWT auth failed: {response.status_code} {response.text[:300]}")
            raise SalesforceError("Failed to authenticate with Salesforce")

        data = response.json()
        self._access_token = data["access_token"]
        self._instance_url = (data.get("instance_url") or self.settings.sf_instance_url or "").rstrip("/")
        # Token responses carry no expiry; refresh well before the default session timeout
        self._token_expires = datetime.now(timezone.utc) + timedelta(minutes=50)
        logger.info(f"Salesforce JWT auth OK -> {self._instance_url}")

    async def _ensure_token(self) -> None:
        if (
            self._access_token
            and self._token_expires
            and datetime.now(timezone.utc) < self._token_expires
        ):
            return
        await self.authenticate()

    async def _request(self, method: str, path_or_url: str, **kwargs) -> Any:
        await self._ensure_token()
        url = path_or_url if path_or_url.startswith("http") else f"{self._instance_url}{path_or_url}"
        headers = {"Authorization": f"Bearer {self._access_token}"}

        try:
            response = await self.http_client.request(method, url, headers=headers, **kwargs)
            if response.status_code == 401:
                # Session expired server-side; re-authenticate once
                await self.authenticate()
                headers = {"Authorization": f"Bearer {self._access_token}"}
                response = await self.http_client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Salesforce {method} {url} transport error: {e}")
            raise SalesforceError(f"Salesforce request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Salesforce {method} {url} failed: {response.status_code} {response.text[:300]}")
            raise SalesforceError(f"Salesforce request failed with HTTP {response.status_code}")
        return response.json()

    @property
    def _api_root(self) -> str:
        return f"/services/data/v{self.settings.sf_api_version}"

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def fetch_active_records(self) -> list[Opportunity]:
        """All open opportunities, following `nextRecordsUrl` pagination."""
        data = await self._request("GET", f"{self._api_root}/query", params={"q": ACTIVE_OPPORTUNITIES_SOQL})
        records = list(data.get("records", []))
        while not data.get("done", True) and data.get("nextRecordsUrl"):
            data = await self._request("GET", data["nextRecordsUrl"])
            records.extend(data.get("records", []))

        logger.info(f"Retrieved {len(records)} active opportunities")
        return [Opportunity.from_record(r) for r in records]

    # =========================================================================
    # FLOWS
    # =========================================================================

    async def invoke_flow(self, flow_api_name: str, inputs: dict[str, Any] | None = None) -> str | None:
        """
        Invoke a Flow and return its text output variable.

        Returns None when the flow reports failure or the output variable is
        missing or not a string. Transport and auth failures raise.
        """
        output_name = self.settings.stale_deals_flow_output
        logger.info(f"Invoking Flow {flow_api_name}")

        results = await self._request(
            "POST",
            f"{self._api_root}/actions/custom/flow/{flow_api_name}",
            json={"inputs": [inputs or {}]},
        )

        if not results or not results[0].get("isSuccess"):
            errors = results[0].get("errors") if results else None
            logger.error(f"Flow {flow_api_name} invocation failed: {errors or 'Unknown error'}")
            return None

        value = (results[0].get("outputValues") or {}).get(output_name)
        if not isinstance(value, str):
            logger.warning(
                f"Flow {flow_api_name} did not return a string '{output_name}' output. Value: {value!r}"
            )
            return None

        return value
