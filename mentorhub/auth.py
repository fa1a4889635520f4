import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db, with_retry
from .models import User
from .security_utils import verify_jwt_token

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 rather than 403
security = HTTPBearer(auto_error=False)


def get_user_from_token(db: Session, token: str) -> Optional[User]:
    """Resolve an access token to a user, or None when the token is invalid"""
    payload = verify_jwt_token(token, "access")
    if not payload:
        return None

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        logger.warning("⚠️ Token subject is not a user id")
        return None

    return with_retry(lambda: db.query(User).filter(User.id == user_id).first())


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the Bearer access token"""

    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    user = get_user_from_token(db, credentials.credentials)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    if user.blocked:
        logger.warning(f"⚠️ Blocked user {user.email} attempted to authenticate")
        raise HTTPException(status_code=403, detail="Your account has been blocked")

    logger.debug(f"✅ User authenticated: {user.email}")
    return user


async def require_mentor(user: User = Depends(get_current_user)) -> User:
    """Current user, who must hold the mentor role"""
    if not user.is_mentor:
        raise HTTPException(status_code=403, detail="Only mentors can perform this action")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Current user, who must hold the admin role"""
    if not user.is_admin:
        logger.warning(f"⚠️ Non-admin user {user.id} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
