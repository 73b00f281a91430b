"""
NoteFlow Backend — Auth Route Handlers
========================================

What:  Account lifecycle endpoints under /api/auth.
How:   Tokens are stateless bearer JWTs; logout only tells the client to
       discard its token.

    POST   /api/auth/signup         register, returns {user, token}   (201)
    POST   /api/auth/login          authenticate, returns {user, token}
    POST   /api/auth/logout         acknowledge logout                 (auth)
    GET    /api/auth/current-user   the caller's profile               (auth)
    GET    /api/auth/verify-token   token check, returns the profile   (auth)
    PUT    /api/auth/current-user   edit name / profile picture        (auth)
    DELETE /api/auth/current-user   delete the caller's account        (auth)

POST /signup and /login are covered by the auth rate limiter.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import get_db_session
from noteflow.models.user import User
from noteflow.schemas.auth import (
    AuthData,
    LoginRequest,
    ProfileUpdateRequest,
    SignupRequest,
    UserData,
    UserPublic,
)
from noteflow.schemas.common import ApiResponse
from noteflow.security import get_current_user
from noteflow.services.auth_service import auth_service
from noteflow.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[AuthData],
    summary="Register a new creator or viewer account",
)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AuthData]:
    user, token = await auth_service.signup(db, payload)
    return ApiResponse[AuthData](
        message="User registered successfully",
        data=AuthData(user=UserPublic.model_validate(user), token=token),
    )


@router.post("/login", response_model=ApiResponse[AuthData], summary="Log in with email and password")
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[AuthData]:
    user, token = await auth_service.login(db, payload)
    return ApiResponse[AuthData](
        message="Login successful",
        data=AuthData(user=UserPublic.model_validate(user), token=token),
    )


@router.post("/logout", response_model=ApiResponse[None])
async def logout(user: User = Depends(get_current_user)) -> ApiResponse[None]:
    logger.info("User logged out: %s", user.id)
    return ApiResponse[None](message="Logout successful")


@router.get("/current-user", response_model=ApiResponse[UserData])
async def current_user(user: User = Depends(get_current_user)) -> ApiResponse[UserData]:
    return ApiResponse[UserData](
        message="User retrieved successfully",
        data=UserData(user=UserPublic.model_validate(user)),
    )


@router.get("/verify-token", response_model=ApiResponse[UserData])
async def verify_token(user: User = Depends(get_current_user)) -> ApiResponse[UserData]:
    return ApiResponse[UserData](
        message="Token is valid",
        data=UserData(user=UserPublic.model_validate(user)),
    )


@router.put("/current-user", response_model=ApiResponse[UserData])
async def update_current_user(
    payload: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[UserData]:
    updated = await user_service.update(
        db, user, name=payload.name, profile_picture=payload.profile_picture
    )
    return ApiResponse[UserData](
        message="Profile updated successfully",
        data=UserData(user=UserPublic.model_validate(updated)),
    )


@router.delete("/current-user", response_model=ApiResponse[None])
async def delete_current_user(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await user_service.delete(db, user.id)
    return ApiResponse[None](message="Account deleted successfully")
