"""
NoteFlow Backend — Auth Service
=================================

What:  Signup and login: validates credentials against the user store and
       issues bearer tokens.
Who:   Called by routes/auth.py.

Login failures never reveal whether the email exists: an unknown email and
a wrong password produce the same 401 message.
"""

import logging
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.exceptions import AuthenticationError
from noteflow.models.user import User
from noteflow.schemas.auth import LoginRequest, SignupRequest
from noteflow.security import create_access_token, hash_password, verify_password
from noteflow.services.user_service import user_service

logger = logging.getLogger(__name__)

MSG_BAD_CREDENTIALS = "Invalid email or password"


class AuthService:
    async def signup(self, db: AsyncSession, payload: SignupRequest) -> Tuple[User, str]:
        user = await user_service.create(
            db,
            name=payload.name,
            email=payload.email,
            password_hash=hash_password(payload.password),
            role=payload.role,
            profile_picture=payload.profile_picture,
        )
        logger.info("User registered: %s (%s)", user.id, user.role)
        return user, create_access_token(user.id, user.role)

    async def login(self, db: AsyncSession, payload: LoginRequest) -> Tuple[User, str]:
        user = await user_service.find_by_email(db, payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.info("Failed login attempt for %s", payload.email)
            raise AuthenticationError(message=MSG_BAD_CREDENTIALS)
        logger.info("User logged in: %s", user.id)
        return user, create_access_token(user.id, user.role)


auth_service = AuthService()
