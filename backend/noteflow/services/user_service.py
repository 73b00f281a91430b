"""
NoteFlow Backend — User Store
===============================

What:  Durable account storage behind a small interface:
       find_by_email, find_by_id, create, update, delete.
Who:   AuthService (signup/login) and the account routes.

Emails are normalized to lower case on the way in, so a lookup with any
casing finds the same account and the unique index catches duplicates
that differ only by case.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.exceptions import ConflictError, DatabaseError, NotFoundError
from noteflow.models.user import User

logger = logging.getLogger(__name__)

MSG_EMAIL_TAKEN = "User with this email already exists"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserService:
    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.email == normalize_email(email)))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user by email: %s", str(e))
            raise DatabaseError(context={"operation": "find_by_email"})

    async def find_by_id(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "find_by_id", "user_id": str(user_id)})

    async def create(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        password_hash: str,
        role: str,
        profile_picture: Optional[str] = None,
    ) -> User:
        """
        Inserts a new account.

        Raises:
            ConflictError: the email is already registered (including a
                concurrent signup that won the race; the request
                transaction is then rolled back by the session dependency).
        """
        if await self.find_by_email(db, email) is not None:
            raise ConflictError(message=MSG_EMAIL_TAKEN, context={"email": normalize_email(email)})

        user = User(
            name=name,
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            profile_picture=profile_picture,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            logger.info("Signup rejected, email already registered: %s", user.email)
            raise ConflictError(message=MSG_EMAIL_TAKEN, context={"email": user.email})
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", str(e))
            raise DatabaseError(context={"operation": "create_user"})
        return user

    async def update(
        self,
        db: AsyncSession,
        user: User,
        name: Optional[str] = None,
        profile_picture: Optional[str] = None,
    ) -> User:
        """Updates editable profile fields. Role and email never change here."""
        if name is not None:
            user.name = name
        if profile_picture is not None:
            user.profile_picture = profile_picture
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating user %s: %s", user.id, str(e))
            raise DatabaseError(context={"operation": "update_user", "user_id": str(user.id)})
        return user

    async def delete(self, db: AsyncSession, user_id: UUID) -> None:
        user = await self.find_by_id(db, user_id)
        if user is None:
            raise NotFoundError(message="User not found", resource="user", resource_id=str(user_id))
        try:
            await db.delete(user)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting user %s: %s", user_id, str(e))
            raise DatabaseError(context={"operation": "delete_user", "user_id": str(user_id)})
        logger.info("Account deleted: %s", user_id)


user_service = UserService()
