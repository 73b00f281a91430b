"""
NoteFlow Backend — Authentication Primitives & Dependencies
=============================================================

What:  Password hashing (bcrypt), bearer token issue/verify (PyJWT), and the
       FastAPI dependencies that resolve the caller's identity.
Who:   AuthService hashes and issues; every protected route depends on
       `get_current_user`, `get_optional_user` or `require_role(...)`.

Token:
    HS256-signed JWT with claims {sub: user id, role, iat, exp}. The role
    claim is informational; authorization always re-reads the user row.

Dependency semantics:
    get_current_user   → 401 on a missing, invalid or expired token, or an
                         unknown user
    get_optional_user  → None instead of 401; a bad token is treated exactly
                         like no token
    require_role(*r)   → get_current_user, then 403 unless user.role in r
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.config import settings
from noteflow.database import get_db_session
from noteflow.exceptions import AuthenticationError, AuthorizationError
from noteflow.models.user import User

logger = logging.getLogger(__name__)

MSG_NO_TOKEN = "No token provided. Authorization denied."
MSG_INVALID_TOKEN = "Invalid token. Authorization denied."
MSG_EXPIRED_TOKEN = "Token expired. Please login again."
MSG_UNKNOWN_USER = "User not found. Authorization denied."

# bcrypt only looks at the first 72 bytes of the secret
_BCRYPT_MAX_BYTES = 72

bearer_scheme = HTTPBearer(auto_error=False)


# ══════════════════════════════════════════════════════════════════════════
# Passwords
# ══════════════════════════════════════════════════════════════════════════

def hash_password(password: str) -> str:
    """Hashes a password with a fresh salt at the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


# ══════════════════════════════════════════════════════════════════════════
# Tokens
# ══════════════════════════════════════════════════════════════════════════

def create_access_token(user_id: uuid.UUID, role: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.jwt_expires_minutes))
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verifies signature and expiry and returns the user id from `sub`.

    Raises:
        AuthenticationError: expired token (its own message) or any other
            signature/format/claim problem.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message=MSG_EXPIRED_TOKEN)
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(message=MSG_INVALID_TOKEN, context={"reason": str(e)})

    try:
        return uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationError(message=MSG_INVALID_TOKEN, context={"reason": "bad subject"})


# ══════════════════════════════════════════════════════════════════════════
# FastAPI Dependencies
# ══════════════════════════════════════════════════════════════════════════

async def _resolve_user(token: str, db: AsyncSession) -> User:
    user_id = decode_access_token(token)
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError(message=MSG_UNKNOWN_USER, context={"user_id": str(user_id)})
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message=MSG_NO_TOKEN)
    return await _resolve_user(credentials.credentials, db)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await _resolve_user(credentials.credentials, db)
    except AuthenticationError as e:
        logger.debug("Ignoring invalid token on optional-auth route: %s", e.message)
        return None


def require_role(*roles: str):
    """Dependency factory: the current user must hold one of `roles`."""

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise AuthorizationError(
                message=f"Access denied. Required role: {' or '.join(roles)}",
                context={"user_id": str(user.id), "role": user.role},
            )
        return user

    return dependency
