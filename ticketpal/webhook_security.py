"""
Webhook Security Module

Signature verification for inbound webhooks (automation worker, RevenueCat).
Both send a hex HMAC-SHA256 of the raw request body in a header:
- Constant-time signature comparison
- Signature is computed over the raw body, before any JSON parsing
"""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

WORKER_SIGNATURE_HEADER = "X-Webhook-Signature"
REVENUECAT_SIGNATURE_HEADER = "X-RevenueCat-Signature"


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_hmac_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """True when signature is the hex HMAC-SHA256 of raw_body under secret"""
    if not signature:
        return False
    expected = compute_hmac_sha256(secret, raw_body)
    return constant_time_compare(expected, signature.strip().lower())


async def verify_signed_request(
    request: Request,
    header_name: str,
    secret: Optional[str],
    failure_status: int = 401,
) -> bytes:
    """
    Verify a signed webhook and return its raw body.

    Raises:
        HTTPException: 500 when the secret isn't configured, failure_status when
            the signature is missing or wrong
    """
    if not secret:
        logger.error(f"❌ Webhook secret not configured for {request.url.path}")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    # Get raw body BEFORE any parsing - this is critical
    raw_body = await request.body()
    signature = request.headers.get(header_name)

    if not signature:
        logger.warning(f"🚫 Missing {header_name} header on {request.url.path}")
        raise HTTPException(status_code=failure_status, detail="Invalid signature")

    if not verify_hmac_signature(raw_body, signature, secret):
        logger.warning(f"🚫 Invalid webhook signature on {request.url.path}")
        raise HTTPException(status_code=failure_status, detail="Invalid signature")

    logger.info(f"✅ Webhook signature verified for {request.url.path}")
    return raw_body
