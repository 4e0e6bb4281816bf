"""
Automation worker webhooks

The worker calls back here when a challenge job finishes. Requests are signed
with WORKER_SECRET (hex HMAC-SHA256 of the raw body in X-Webhook-Signature).
"""

import json
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, ValidationError
from sqlalchemy.orm import Session

from ..config import WORKER_SECRET
from ..database import get_db
from ..enums import ChallengeStatus
from ..models import Challenge
from ..shared.dates import utcnow
from ..webhook_security import WORKER_SIGNATURE_HEADER, verify_signed_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/automation", tags=["Webhooks"])


class ChallengeResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = False
    challengeText: Optional[str] = None
    screenshotUrls: Optional[list[str]] = None
    videoUrl: Optional[str] = None
    referenceNumber: Optional[str] = None
    executionMode: Optional[Literal["typescript", "agentic"]] = None
    fallbackUsed: Optional[bool] = None
    fallbackReason: Optional[str] = None
    error: Optional[str] = None


class ChallengeWebhookPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    jobId: str
    type: str
    status: str  # completed | failed
    issuerId: Optional[str] = None
    challengeId: Optional[str] = None
    ticketId: Optional[str] = None
    result: ChallengeResult = ChallengeResult()
    timestamp: Optional[str] = None


def apply_challenge_result(challenge: Challenge, payload: ChallengeWebhookPayload) -> str:
    """Write the worker's outcome onto the challenge and return the new status"""
    result = payload.result
    succeeded = payload.status == "completed" and result.success
    new_status = ChallengeStatus.SUCCESS if succeeded else ChallengeStatus.ERROR
    now = utcnow()

    challenge.status = new_status.value
    if succeeded:
        challenge.submitted_at = now
    challenge.challenge_metadata = {
        "challengeSubmitted": result.success,
        "submittedAt": now.isoformat(),
        "challengeText": result.challengeText,
        "screenshotUrls": result.screenshotUrls or [],
        "videoUrl": result.videoUrl,
        "referenceNumber": result.referenceNumber,
        "executionMode": result.executionMode,
        "fallbackUsed": result.fallbackUsed,
        "fallbackReason": result.fallbackReason,
        "error": result.error,
    }
    return new_status.value


@router.post("/challenge")
async def handle_challenge_webhook(request: Request, db: Session = Depends(get_db)):
    """Challenge automation finished (completed or failed)"""
    raw_body = await verify_signed_request(request, WORKER_SIGNATURE_HEADER, WORKER_SECRET)

    try:
        payload = ChallengeWebhookPayload.model_validate(json.loads(raw_body))
    except (ValueError, ValidationError) as e:
        logger.warning(f"⚠️ Invalid challenge webhook payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload") from e

    logger.info(
        f"📨 Challenge webhook: job={payload.jobId} status={payload.status} "
        f"issuer={payload.issuerId} challenge={payload.challengeId}"
    )

    if payload.type != "challenge":
        logger.warning(f"⚠️ Invalid webhook type: {payload.type}")
        raise HTTPException(status_code=400, detail="Invalid payload type")

    challenge = db.query(Challenge).filter(Challenge.worker_job_id == payload.jobId).first()
    if not challenge:
        logger.warning(f"⚠️ Challenge not found for job {payload.jobId}")
        raise HTTPException(status_code=404, detail="Challenge not found")

    if challenge.status == ChallengeStatus.CANCELLED.value:
        logger.info(f"Challenge {challenge.id} was cancelled, ignoring webhook for job {payload.jobId}")
        return {"ignored": True, "reason": "cancelled"}

    new_status = apply_challenge_result(challenge, payload)
    db.commit()

    logger.info(
        f"✅ Challenge {challenge.id} (ticket {challenge.ticket_id}) updated from webhook: {new_status}"
    )
    return {"success": True, "challengeId": challenge.id, "status": new_status}
