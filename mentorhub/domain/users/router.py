"""User routers - authentication and profile endpoints"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import auth_limiter
from .schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RefreshResponse,
    RefreshTokenRequest,
    RegisterRequest,
    UserResponse,
)
from .service import UserService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
users_router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# AUTHENTICATION
# ============================================================================


@auth_router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    data: RegisterRequest,
    _: None = Depends(auth_limiter),
    service: UserService = Depends(get_user_service),
):
    user, tokens = service.register(data)
    return AuthResponse(user=UserResponse.from_model(user), tokens=tokens)


@auth_router.post("/login", response_model=AuthResponse)
def login(
    data: LoginRequest,
    _: None = Depends(auth_limiter),
    service: UserService = Depends(get_user_service),
):
    user, tokens = service.login(data)
    return AuthResponse(user=UserResponse.from_model(user), tokens=tokens)


@auth_router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.get_profile(current_user))


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    service.logout(current_user)
    return MessageResponse(message="Logged out successfully")


@auth_router.post("/refresh-token", response_model=RefreshResponse)
def refresh_token(
    data: RefreshTokenRequest,
    service: UserService = Depends(get_user_service),
):
    """Exchange a refresh token for a new access/refresh pair"""
    user, tokens = service.refresh(data.refreshToken)
    return RefreshResponse(user=UserResponse.from_model(user), **tokens)


# ============================================================================
# PROFILE
# ============================================================================


@users_router.get("/profile", response_model=UserResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.get_profile(current_user))


@users_router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.update_profile(current_user, data))


@users_router.post("/avatar", response_model=UserResponse)
async def upload_avatar(
    avatar: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    content = await avatar.read()
    return UserResponse.from_model(service.save_avatar(current_user, content, avatar.content_type))
