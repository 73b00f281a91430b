"""
NoteFlow Backend — Comment Service
====================================

What:  Add, list, fetch, edit and soft-delete comments; rating summaries.
Who:   Called by routes/comments.py.

Moderation rules:
    - Edits and deletes are a single UPDATE matching (id, author, not
      deleted). Zero affected rows means the comment is missing, deleted or
      owned by someone else, and all three answer 404.
    - Deleted comments disappear from every read path and from the rating
      average, but the rows are kept.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.exceptions import DatabaseError, NotFoundError
from noteflow.models.comment import Comment
from noteflow.models.note import Note
from noteflow.models.user import User
from noteflow.schemas.comment import (
    CommentCreate,
    CommentListData,
    CommentOut,
    CommentUpdate,
    RatingSummary,
)
from noteflow.schemas.common import Pagination

logger = logging.getLogger(__name__)

MSG_NOTE_NOT_FOUND = "Note not found"
MSG_COMMENT_NOT_FOUND = "Comment not found"
MSG_NOT_OWNED_UPDATE = "Comment not found or you are not authorized to update it"
MSG_NOT_OWNED_DELETE = "Comment not found or you are not authorized to delete it"


def _to_out(comment: Comment, user_name: Optional[str], profile_picture: Optional[str]) -> CommentOut:
    return CommentOut(
        id=comment.id,
        note_id=comment.note_id,
        user_id=comment.user_id,
        user_name=user_name,
        user_profile_picture=profile_picture,
        text=comment.text,
        rating=comment.rating,
        created_at=comment.created_at,
        edited_at=comment.edited_at,
        is_edited=comment.edited_at is not None,
    )


class CommentService:
    async def add_comment(self, db: AsyncSession, author: User, payload: CommentCreate) -> CommentOut:
        try:
            note_exists = (
                await db.execute(
                    select(Note.id).where(Note.id == payload.note_id, Note.is_published.is_(True))
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error checking note %s: %s", payload.note_id, str(e))
            raise DatabaseError(context={"operation": "add_comment"})

        if note_exists is None:
            raise NotFoundError(message=MSG_NOTE_NOT_FOUND, resource="note", resource_id=str(payload.note_id))

        comment = Comment(
            user_id=author.id,
            note_id=payload.note_id,
            text=payload.text,
            rating=payload.rating,
        )
        try:
            db.add(comment)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error adding comment: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "add_comment"})

        logger.info("Comment %s added to note %s by %s", comment.id, comment.note_id, author.id)
        return _to_out(comment, author.name, author.profile_picture)

    async def list_comments(
        self,
        db: AsyncSession,
        note_id: UUID,
        limit: int = 10,
        offset: int = 0,
    ) -> CommentListData:
        """Newest first, soft-deleted comments excluded, plus the rating summary."""
        conditions = [Comment.note_id == note_id, Comment.is_deleted.is_(False)]
        try:
            total = (
                await db.execute(select(func.count(Comment.id)).where(*conditions))
            ).scalar_one()
            result = await db.execute(
                select(Comment, User.name, User.profile_picture)
                .join(User, User.id == Comment.user_id)
                .where(*conditions)
                .order_by(Comment.created_at.desc(), Comment.id.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing comments for %s: %s", note_id, str(e))
            raise DatabaseError(context={"operation": "list_comments", "note_id": str(note_id)})

        return CommentListData(
            comments=[_to_out(c, name, picture) for c, name, picture in rows],
            pagination=Pagination.build(total=total, limit=limit, offset=offset),
            rating=await self.rating_summary(db, note_id),
        )

    async def get_comment(self, db: AsyncSession, comment_id: UUID) -> CommentOut:
        try:
            row = (
                await db.execute(
                    select(Comment, User.name, User.profile_picture)
                    .join(User, User.id == Comment.user_id)
                    .where(Comment.id == comment_id, Comment.is_deleted.is_(False))
                )
            ).first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching comment %s: %s", comment_id, str(e))
            raise DatabaseError(context={"operation": "get_comment"})

        if row is None:
            raise NotFoundError(message=MSG_COMMENT_NOT_FOUND, resource="comment", resource_id=str(comment_id))
        return _to_out(*row)

    async def update_comment(
        self,
        db: AsyncSession,
        comment_id: UUID,
        author: User,
        payload: CommentUpdate,
    ) -> CommentOut:
        values = {"text": payload.text, "edited_at": datetime.now(timezone.utc)}
        if "rating" in payload.model_fields_set:
            values["rating"] = payload.rating

        try:
            result = await db.execute(
                update(Comment)
                .where(
                    Comment.id == comment_id,
                    Comment.user_id == author.id,
                    Comment.is_deleted.is_(False),
                )
                .values(**values)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Database error updating comment %s: %s", comment_id, str(e))
            raise DatabaseError(context={"operation": "update_comment"})

        if result.rowcount == 0:
            raise NotFoundError(message=MSG_NOT_OWNED_UPDATE, resource="comment", resource_id=str(comment_id))

        logger.info("Comment %s edited by %s", comment_id, author.id)
        return await self.get_comment(db, comment_id)

    async def delete_comment(self, db: AsyncSession, comment_id: UUID, author: User) -> None:
        """Soft delete. Deleting an already-deleted comment is a 404."""
        try:
            result = await db.execute(
                update(Comment)
                .where(
                    Comment.id == comment_id,
                    Comment.user_id == author.id,
                    Comment.is_deleted.is_(False),
                )
                .values(is_deleted=True)
                .execution_options(synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting comment %s: %s", comment_id, str(e))
            raise DatabaseError(context={"operation": "delete_comment"})

        if result.rowcount == 0:
            raise NotFoundError(message=MSG_NOT_OWNED_DELETE, resource="comment", resource_id=str(comment_id))
        logger.info("Comment %s soft-deleted by %s", comment_id, author.id)

    async def rating_summary(self, db: AsyncSession, note_id: UUID) -> RatingSummary:
        """Average of non-null ratings on live comments, one decimal place."""
        try:
            average, count = (
                await db.execute(
                    select(func.avg(Comment.rating), func.count(Comment.rating)).where(
                        Comment.note_id == note_id,
                        Comment.is_deleted.is_(False),
                        Comment.rating.is_not(None),
                    )
                )
            ).one()
        except SQLAlchemyError as e:
            logger.error("Database error computing rating for %s: %s", note_id, str(e))
            raise DatabaseError(context={"operation": "rating_summary", "note_id": str(note_id)})

        return RatingSummary(
            note_id=note_id,
            average_rating=round(float(average), 1) if count else 0.0,
            rating_count=count,
        )


comment_service = CommentService()
