"""
Notification Service
In-app notifications plus Expo push delivery to the user's devices
"""

import logging
import re
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..config import EXPO_ACCESS_TOKEN, EXPO_PUSH_URL
from ..models import Notification, PushToken

logger = logging.getLogger(__name__)

# Expo accepts at most 100 messages per request
EXPO_CHUNK_SIZE = 100
EXPO_TOKEN_PATTERN = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[.+\]$")
STALE_TOKEN_ERRORS = {"DeviceNotRegistered", "InvalidCredentials"}


def is_expo_push_token(token: str) -> bool:
    return bool(token and EXPO_TOKEN_PATTERN.match(token))


def create_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    body: str,
    ticket_id: Optional[int] = None,
    data: Optional[dict] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        ticket_id=ticket_id,
        type=getattr(notification_type, "value", notification_type),
        title=title,
        body=body,
        data=data or {},
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


async def send_push_notification(
    db: Session,
    user_id: int,
    title: str,
    body: str,
    data: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """
    Send a push notification to every registered device of a user.

    Tokens Expo reports as no longer registered are deleted.

    Returns:
        {"success": bool, "error": Optional[str], "sent": int}
    """
    push_tokens = db.query(PushToken).filter(PushToken.user_id == user_id).all()
    if not push_tokens:
        logger.info(f"No push tokens found for user {user_id}")
        return {"success": True, "error": None, "sent": 0}

    messages = []
    for push_token in push_tokens:
        if not is_expo_push_token(push_token.token):
            logger.error(f"❌ Invalid Expo push token for user {user_id}: {push_token.token}")
            continue
        messages.append(
            {
                "to": push_token.token,
                "sound": "default",
                "title": title,
                "body": body,
                "data": data or {},
                "priority": "high",
            }
        )

    if not messages:
        return {"success": False, "error": "No valid push tokens", "sent": 0}

    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if EXPO_ACCESS_TOKEN:
        headers["Authorization"] = f"Bearer {EXPO_ACCESS_TOKEN}"

    tickets: list[tuple[dict, dict]] = []
    async with httpx.AsyncClient(transport=transport, timeout=10.0) as client:
        for start in range(0, len(messages), EXPO_CHUNK_SIZE):
            chunk = messages[start : start + EXPO_CHUNK_SIZE]
            try:
                response = await client.post(EXPO_PUSH_URL, json=chunk, headers=headers)
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"❌ Error sending push notification chunk: {e}")
                continue

            chunk_tickets = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(chunk_tickets, list):
                logger.error(f"❌ Unexpected Expo push response: {str(payload)[:200]}")
                continue
            tickets.extend(
                (message, ticket) for message, ticket in zip(chunk, chunk_tickets) if isinstance(ticket, dict)
            )

    stale_tokens = []
    for message, ticket in tickets:
        if ticket.get("status") != "error":
            continue
        logger.error(f"❌ Push notification error: {ticket.get('message')}")
        if (ticket.get("details") or {}).get("error") in STALE_TOKEN_ERRORS:
            stale_tokens.append(message["to"])

    if stale_tokens:
        db.query(PushToken).filter(PushToken.token.in_(stale_tokens)).delete(synchronize_session=False)
        db.commit()
        logger.info(f"🗑️ Removed {len(stale_tokens)} invalid push token(s)")

    sent = sum(1 for _, ticket in tickets if ticket.get("status") == "ok")
    return {"success": True, "error": None, "sent": sent}


async def create_and_send_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    body: str,
    ticket_id: Optional[int] = None,
    data: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Notification:
    """Store an in-app notification and push it to the user's devices"""
    notification = create_notification(
        db,
        user_id=user_id,
        notification_type=notification_type,
        title=title,
        body=body,
        ticket_id=ticket_id,
        data=data,
    )

    payload = dict(data or {})
    payload["notificationId"] = notification.id
    if ticket_id is not None:
        payload["ticketId"] = ticket_id

    result = await send_push_notification(db, user_id, title, body, payload, transport=transport)
    if not result["success"]:
        logger.warning(f"⚠️ Push not delivered for notification {notification.id}: {result['error']}")

    return notification
