"""
Automation Worker Client

HTTP client for the external worker service that drives issuer portals. The
worker reports back asynchronously through the signed webhooks in
routes/webhooks.py.
"""

import logging
from typing import Any, Optional

import httpx

from ..config import APP_URL, WORKER_SECRET, WORKER_TIMEOUT_SECONDS, WORKER_URL

logger = logging.getLogger(__name__)


class WorkerServiceError(Exception):
    """Raised when the worker is unreachable, misconfigured or returns an error"""


class WorkerClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        secret: Optional[str] = None,
        app_url: Optional[str] = None,
        timeout: float = WORKER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url if base_url is not None else WORKER_URL or "").rstrip("/")
        self.secret = secret if secret is not None else WORKER_SECRET
        self.app_url = (app_url if app_url is not None else APP_URL or "").rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.secret)

    def webhook_url(self, path: str = "") -> str:
        if not self.app_url:
            raise WorkerServiceError("App URL not configured. Set APP_URL.")
        url = self.app_url if self.app_url.startswith("http") else f"https://{self.app_url}"
        return f"{url}/webhooks/automation{path}"

    async def _post(self, path: str, payload: dict) -> dict:
        if not self.is_configured:
            raise WorkerServiceError(
                "Worker not configured. Set WORKER_URL and WORKER_SECRET environment variables."
            )

        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.secret}"}
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise WorkerServiceError(f"Failed to connect to automation service: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            error = data.get("error") if isinstance(data, dict) else None
            raise WorkerServiceError(error or f"HTTP {response.status_code}")

        if not isinstance(data, dict):
            raise WorkerServiceError(f"Invalid response from automation service (HTTP {response.status_code})")
        return data

    async def start_challenge(
        self,
        challenge_id: int,
        ticket_id: int,
        pcn_number: str,
        issuer: Optional[str],
        reason: str,
        custom_reason: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Ask the worker to submit a challenge on the issuer's portal.

        Returns:
            The worker's response ({"success": True, "jobId": ...}) or
            {"success": False, "error": message}
        """
        try:
            payload = {
                "challengeId": str(challenge_id),
                "ticketId": str(ticket_id),
                "pcnNumber": pcn_number,
                "issuerId": issuer,
                "challengeReason": reason,
                "customReason": custom_reason,
                "webhookUrl": self.webhook_url("/challenge"),
                "webhookSecret": self.secret,
            }
            logger.info(f"🤖 Starting challenge {challenge_id} for ticket {ticket_id}")
            result = await self._post("/automation/challenge", payload)
        except WorkerServiceError as e:
            logger.error(f"❌ Failed to start challenge {challenge_id}: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"✅ Challenge job started: {result.get('jobId')}")
        return result

    async def request_issuer_generation(
        self, issuer_id: str, issuer_name: str, issuer_website: Optional[str] = None
    ) -> dict[str, Any]:
        """Request automation code generation for an unsupported issuer"""
        try:
            logger.info(f"🤖 Requesting issuer generation for {issuer_name} ({issuer_id})")
            result = await self._post(
                "/automation/generate",
                {
                    "issuerId": issuer_id,
                    "issuerName": issuer_name,
                    "issuerWebsite": issuer_website,
                    "webhookUrl": self.webhook_url(),
                    "webhookSecret": self.secret,
                },
            )
        except WorkerServiceError as e:
            logger.error(f"❌ Failed to request issuer generation for {issuer_id}: {e}")
            return {"success": False, "error": str(e)}

        logger.info(f"✅ Generation job started for {issuer_id}: {result.get('jobId')}")
        return result

    async def run_health_check(self, issuers: Optional[list[str]] = None) -> dict[str, Any]:
        """
        Check that issuer portals are reachable and still look the way the
        automations expect.

        Raises:
            WorkerServiceError: worker missing, unreachable or returned an error
        """
        logger.info(f"🩺 Running automation health check: {issuers or 'all issuers'}")
        return await self._post("/automation/health-check", {"issuers": issuers})
