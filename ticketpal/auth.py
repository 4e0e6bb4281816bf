import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import DEVICE_TOKEN_EXPIRY_DAYS, SECRET_KEY
from .database import get_db
from .models import User
from .shared.dates import utcnow

logger = logging.getLogger(__name__)

security = HTTPBearer()

JWT_ALGORITHM = "HS256"


def create_device_token(device_id: str, user_public_id: str, expires_in_days: Optional[int] = None) -> str:
    """Create a signed device token for the mobile app"""
    now = utcnow()
    expiry = now + timedelta(days=expires_in_days or DEVICE_TOKEN_EXPIRY_DAYS)
    claims = {
        "deviceId": device_id,
        "userId": user_public_id,
        "type": "device",
        "iat": now,
        "exp": expiry,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_device_token(token: str) -> Optional[dict]:
    """Decode a device token, returning None when it is invalid or expired"""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ Failed to verify device token: {e}")
        return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from a device token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    claims = verify_device_token(credentials.credentials)
    if not claims or not claims.get("userId"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = db.query(User).filter(User.public_id == claims["userId"]).first()
    if not user:
        logger.warning(f"⚠️ Token references unknown user {claims['userId']}")
        raise HTTPException(status_code=401, detail="User not found")

    logger.debug(f"✅ User authenticated: {user.id}")
    return user
