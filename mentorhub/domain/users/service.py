"""User service - Registration, authentication and profile management"""

import logging
import os
import uuid
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ... import config
from ...database import with_retry
from ...models import User
from ...security_utils import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_jwt_token,
    verify_password,
)
from .repository import UserRepository
from .schemas import LoginRequest, ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)

AVATAR_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


class UserService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _unique_username(self, email: str) -> str:
        """Email local part, with a numeric suffix on collision"""
        base = email.split("@")[0]
        candidate = base
        counter = 1
        while self.repo.username_exists(self.db, candidate):
            candidate = f"{base}{counter}"
            counter += 1
        return candidate

    def _issue_tokens(self, user: User) -> dict:
        access_token = create_access_token(user.id)
        refresh_token = create_refresh_token(user.id)
        user.refresh_token = refresh_token
        self.repo.save(self.db, user)
        return {"accessToken": access_token, "refreshToken": refresh_token}

    def register(self, data: RegisterRequest) -> tuple[User, dict]:
        if self.repo.get_by_email(self.db, data.email):
            raise HTTPException(status_code=400, detail="Email already registered")

        logger.info(f"🆕 Registering user: {data.email}")
        try:
            user = self.repo.create_user(
                self.db,
                email=data.email,
                username=self._unique_username(data.email),
                password_hash=hash_password(data.password),
                first_name=data.firstName,
                last_name=data.lastName,
                roles=["user"],
                balance=0.0,
                interests=[],
            )
        except IntegrityError as e:
            # Email or username taken between the check and the insert
            self.db.rollback()
            logger.error(f"❌ Registration conflict for {data.email}: {e}")
            raise HTTPException(status_code=400, detail="Email already registered") from e

        tokens = self._issue_tokens(user)
        logger.info(f"✅ New user created: {user.email}")
        return user, tokens

    def login(self, data: LoginRequest) -> tuple[User, dict]:
        user = with_retry(lambda: self.repo.get_by_email(self.db, data.email))
        if not user or not verify_password(data.password, user.password_hash):
            logger.warning(f"⚠️ Failed login attempt for {data.email}")
            raise HTTPException(status_code=401, detail="Invalid credentials")

        if user.blocked:
            raise HTTPException(status_code=403, detail="Your account has been blocked")

        tokens = self._issue_tokens(user)
        logger.info(f"✅ User logged in: {user.email}")
        return user, tokens

    def refresh(self, refresh_token: Optional[str]) -> tuple[User, dict]:
        """Rotate the refresh token; the presented token stops working"""
        if not refresh_token:
            raise HTTPException(status_code=401, detail="Refresh token required")

        payload = verify_jwt_token(refresh_token, "refresh")
        if not payload:
            raise HTTPException(status_code=401, detail="Invalid refresh token")

        user = self.repo.get_by_id(self.db, int(payload["sub"]))
        if not user or user.refresh_token != refresh_token:
            logger.warning("⚠️ Refresh token reuse or unknown user")
            raise HTTPException(status_code=401, detail="Invalid refresh token")

        if user.blocked:
            raise HTTPException(status_code=403, detail="Your account has been blocked")

        return user, self._issue_tokens(user)

    def logout(self, user: User) -> None:
        user.refresh_token = None
        self.repo.save(self.db, user)
        logger.info(f"👋 User logged out: {user.email}")

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def get_profile(self, user: User) -> User:
        profile = self.repo.get_by_id(self.db, user.id)
        if not profile:
            raise HTTPException(status_code=404, detail="User not found")
        return profile

    def update_profile(self, user: User, data: ProfileUpdate) -> User:
        if data.email is not None and data.email.strip().lower() != user.email:
            raise HTTPException(status_code=400, detail="Email cannot be updated through profile")

        if data.firstName is not None and not data.firstName.strip():
            raise HTTPException(status_code=400, detail="First name is required")

        if data.firstName is not None:
            user.first_name = data.firstName.strip()
        if data.lastName is not None and data.lastName.strip():
            user.last_name = data.lastName.strip()
        if data.username is not None and data.username.strip():
            username = data.username.strip()
            if self.repo.username_exists(self.db, username, exclude_user_id=user.id):
                raise HTTPException(status_code=400, detail="Username already taken")
            user.username = username
        if data.interests is not None:
            user.interests = data.interests

        profile = user.mentor_profile
        if profile is not None and user.is_mentor:
            if data.bio is not None:
                profile.bio = data.bio
            if data.expertise is not None:
                profile.expertise = data.expertise
            if data.hourlyRate is not None:
                profile.hourly_rate = data.hourlyRate

        self.repo.save(self.db, user)
        logger.info(f"✅ Profile updated for user {user.id}")
        return user

    def save_avatar(self, user: User, content: bytes, content_type: Optional[str]) -> User:
        """Store an uploaded image under UPLOAD_DIR/avatars and point the user at it"""
        if content_type not in AVATAR_TYPES:
            raise HTTPException(status_code=400, detail="Please upload an image file")
        if not content:
            raise HTTPException(status_code=400, detail="Please upload a file")
        if len(content) > config.MAX_AVATAR_BYTES:
            raise HTTPException(status_code=400, detail="File too large")

        avatar_dir = os.path.join(config.UPLOAD_DIR, "avatars")
        os.makedirs(avatar_dir, exist_ok=True)
        filename = f"avatar-{uuid.uuid4().hex}{AVATAR_TYPES[content_type]}"
        with open(os.path.join(avatar_dir, filename), "wb") as f:
            f.write(content)

        old_avatar = user.avatar
        user.avatar = f"/uploads/avatars/{filename}"
        self.repo.save(self.db, user)

        if old_avatar and old_avatar.startswith("/uploads/avatars/"):
            old_path = os.path.join(avatar_dir, os.path.basename(old_avatar))
            try:
                os.remove(old_path)
            except OSError as e:
                logger.warning(f"⚠️ Could not delete old avatar {old_path}: {e}")

        logger.info(f"🖼️ Avatar updated for user {user.id}")
        return user
