"""
NoteFlow Backend — Like & Bookmark Service
============================================

What:  One toggle-resource service, instantiated for likes and bookmarks.
Who:   Called by routes/likes.py and routes/bookmarks.py.

Toggle semantics:
    1. DELETE the (user, note) row
    2. If nothing was deleted, INSERT ... ON CONFLICT DO NOTHING

    Whatever the interleaving of concurrent toggles, the unique constraint
    keeps at most one row per (user, note), and a conflicting insert is a
    successful no-op rather than an error.
"""

import logging
from typing import Type
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import insert_ignoring_conflicts
from noteflow.exceptions import DatabaseError, NotFoundError
from noteflow.models.engagement import Bookmark, Like
from noteflow.models.note import Note
from noteflow.models.user import User
from noteflow.schemas.common import Pagination
from noteflow.schemas.engagement import (
    BookmarkStats,
    EngagedNote,
    EngagedNotesData,
    EngagedUser,
    EngagedUsersData,
)
from noteflow.schemas.note import NoteSummary

logger = logging.getLogger(__name__)

MSG_NOTE_NOT_FOUND = "Note not found"


class ToggleService:
    """
    Membership of users in a per-note set (likes, bookmarks).

    `model` must have user_id, note_id and created_at columns and a unique
    constraint on (user_id, note_id).
    """

    def __init__(self, model: Type, label: str):
        self.model = model
        self.label = label

    async def _ensure_note(self, db: AsyncSession, note_id: UUID) -> None:
        try:
            found = (
                await db.execute(
                    select(Note.id).where(Note.id == note_id, Note.is_published.is_(True))
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error checking note %s: %s", note_id, str(e))
            raise DatabaseError(context={"operation": f"{self.label}_check_note"})
        if found is None:
            raise NotFoundError(message=MSG_NOTE_NOT_FOUND, resource="note", resource_id=str(note_id))

    async def toggle(self, db: AsyncSession, user: User, note_id: UUID) -> bool:
        """Flips membership and returns the new state (True = now active)."""
        await self._ensure_note(db, note_id)
        model = self.model
        try:
            removed = await db.execute(
                delete(model).where(model.user_id == user.id, model.note_id == note_id)
            )
            if removed.rowcount:
                logger.info("%s removed: user=%s note=%s", self.label, user.id, note_id)
                return False

            await db.execute(
                insert_ignoring_conflicts(db, model, user_id=user.id, note_id=note_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error toggling %s: %s", self.label, str(e), exc_info=True)
            raise DatabaseError(context={"operation": f"{self.label}_toggle", "note_id": str(note_id)})

        logger.info("%s added: user=%s note=%s", self.label, user.id, note_id)
        return True

    async def remove(self, db: AsyncSession, user: User, note_id: UUID) -> None:
        model = self.model
        try:
            result = await db.execute(
                delete(model).where(model.user_id == user.id, model.note_id == note_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error removing %s: %s", self.label, str(e))
            raise DatabaseError(context={"operation": f"{self.label}_remove"})
        if result.rowcount == 0:
            raise NotFoundError(
                message=f"{self.label.capitalize()} not found",
                resource=self.label,
                resource_id=str(note_id),
            )

    async def count(self, db: AsyncSession, note_id: UUID) -> int:
        model = self.model
        try:
            return (
                await db.execute(select(func.count(model.id)).where(model.note_id == note_id))
            ).scalar_one()
        except SQLAlchemyError as e:
            logger.error("Database error counting %s: %s", self.label, str(e))
            raise DatabaseError(context={"operation": f"{self.label}_count"})

    async def is_active(self, db: AsyncSession, user: User, note_id: UUID) -> bool:
        model = self.model
        try:
            found = (
                await db.execute(
                    select(model.id).where(model.user_id == user.id, model.note_id == note_id)
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error checking %s: %s", self.label, str(e))
            raise DatabaseError(context={"operation": f"{self.label}_check"})
        return found is not None

    async def list_users(
        self,
        db: AsyncSession,
        note_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> EngagedUsersData:
        model = self.model
        try:
            total = await self.count(db, note_id)
            rows = (
                await db.execute(
                    select(User.id, User.name, User.profile_picture, model.created_at)
                    .select_from(model)
                    .join(User, User.id == model.user_id)
                    .where(model.note_id == note_id)
                    .order_by(model.created_at.desc(), model.id.desc())
                    .limit(limit)
                    .offset(offset)
                )
            ).all()
        except SQLAlchemyError as e:
            logger.error("Database error listing %s users: %s", self.label, str(e))
            raise DatabaseError(context={"operation": f"{self.label}_users"})

        return EngagedUsersData(
            note_id=note_id,
            users=[
                EngagedUser(user_id=uid, name=name, profile_picture=picture, created_at=created_at)
                for uid, name, picture, created_at in rows
            ],
            pagination=Pagination.build(total=total, limit=limit, offset=offset),
        )

    async def list_notes(
        self,
        db: AsyncSession,
        user: User,
        limit: int = 20,
        offset: int = 0,
    ) -> EngagedNotesData:
        """The user's liked/bookmarked published notes, most recent first."""
        model = self.model
        conditions = [model.user_id == user.id, Note.is_published.is_(True)]
        try:
            total = (
                await db.execute(
                    select(func.count(model.id))
                    .select_from(model)
                    .join(Note, Note.id == model.note_id)
                    .where(*conditions)
                )
            ).scalar_one()
            rows = (
                await db.execute(
                    select(Note, User.name, model.created_at)
                    .select_from(model)
                    .join(Note, Note.id == model.note_id)
                    .join(User, User.id == Note.creator_id)
                    .where(*conditions)
                    .order_by(model.created_at.desc(), model.id.desc())
                    .limit(limit)
                    .offset(offset)
                )
            ).all()
        except SQLAlchemyError as e:
            logger.error("Database error listing %s notes: %s", self.label, str(e))
            raise DatabaseError(context={"operation": f"{self.label}_notes"})

        return EngagedNotesData(
            notes=[
                EngagedNote(
                    **NoteSummary.from_note(note, creator_name).model_dump(),
                    engaged_at=engaged_at,
                )
                for note, creator_name, engaged_at in rows
            ],
            pagination=Pagination.build(total=total, limit=limit, offset=offset),
        )


class BookmarkService(ToggleService):
    def __init__(self):
        super().__init__(Bookmark, "bookmark")

    async def stats(self, db: AsyncSession, user: User) -> BookmarkStats:
        """Bookmark count plus the number of distinct subjects and creators."""
        try:
            total, subjects, creators = (
                await db.execute(
                    select(
                        func.count(Bookmark.id),
                        func.count(func.distinct(Note.subject)),
                        func.count(func.distinct(Note.creator_id)),
                    )
                    .select_from(Bookmark)
                    .join(Note, Note.id == Bookmark.note_id)
                    .where(Bookmark.user_id == user.id, Note.is_published.is_(True))
                )
            ).one()
        except SQLAlchemyError as e:
            logger.error("Database error computing bookmark stats: %s", str(e))
            raise DatabaseError(context={"operation": "bookmark_stats"})
        return BookmarkStats(total_bookmarks=total, subjects_count=subjects, creators_count=creators)


like_service = ToggleService(Like, "like")
bookmark_service = BookmarkService()
