from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import Notification, PushToken, User

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class NotificationResponse(BaseModel):
    id: int
    ticketId: Optional[int] = None
    type: str
    title: str
    body: str
    data: Optional[dict] = None
    read: bool
    createdAt: Optional[datetime] = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unreadCount: int


class PushTokenRequest(BaseModel):
    token: str
    platform: Optional[Literal["ios", "android"]] = None


def _serialize(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        ticketId=notification.ticket_id,
        type=notification.type,
        title=notification.title,
        body=notification.body,
        data=notification.data,
        read=notification.read,
        createdAt=notification.created_at,
    )


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the user's in-app notifications, newest first"""
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))

    notifications = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    unread_count = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.read.is_(False))
        .count()
    )

    return NotificationListResponse(
        notifications=[_serialize(n) for n in notifications], unreadCount=unread_count
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == current_user.id)
        .first()
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.read = True
    db.commit()
    db.refresh(notification)
    return _serialize(notification)


@router.post("/push-tokens")
async def register_push_token(
    data: PushTokenRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Register (or move to this user) an Expo push token"""
    push_token = db.query(PushToken).filter(PushToken.token == data.token).first()
    if push_token is None:
        push_token = PushToken(token=data.token)
        db.add(push_token)

    push_token.user_id = current_user.id
    push_token.platform = data.platform
    db.commit()
    return {"success": True}


@router.delete("/push-tokens/{token}")
async def unregister_push_token(
    token: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db.query(PushToken).filter(PushToken.user_id == current_user.id, PushToken.token == token).delete(
        synchronize_session=False
    )
    db.commit()
    return {"success": True}
