"""
NoteFlow Backend — Note Service
=================================

What:  Note repository and the note-facing business rules.
Who:   Called by routes/notes.py; PaymentService reuses `get_note_detail`
       to report post-purchase access.

Operations:
    create_note()      creator publishes a note
    list_notes()       public filtered, sorted, offset-paginated listing
    get_note_detail()  one note + ownership/purchase flags + access decision
    update_note()      partial update, scoped to (note id, creator id)
    delete_note()      delete, scoped to (note id, creator id)

Ownership scoping:
    Update and delete look the note up by id AND creator id. A note that
    exists but belongs to someone else is indistinguishable from a missing
    one (404), so callers cannot probe other creators' drafts.

Purchase lookup:
    The detail query computes is_purchased in the same statement as the note
    fetch via an EXISTS subquery against completed payments.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import asc, delete, desc, func, literal, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.exceptions import DatabaseError, NotFoundError, ValidationError
from noteflow.models.note import Note
from noteflow.models.payment import STATUS_COMPLETED, Payment
from noteflow.models.user import User
from noteflow.schemas.common import Pagination
from noteflow.schemas.note import NoteCreate, NoteDetail, NoteListData, NoteSummary, NoteUpdate
from noteflow.services.access_policy import RequesterContext, decide_access, to_cents

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Note not found"
MSG_NOT_OWNED_UPDATE = "Note not found or you are not authorized to update this note"
MSG_NOT_OWNED_DELETE = "Note not found or you are not authorized to delete this note"

SORT_COLUMNS = {
    "date_uploaded": Note.date_uploaded,
    "date_modified": Note.date_modified,
    "title": Note.title,
    "price": Note.price_cents,
    "subject": Note.subject,
}


def purchased_flag(user_id: Optional[UUID]):
    """Boolean column: does `user_id` hold a completed payment for the row's note."""
    if user_id is None:
        return literal(False).label("is_purchased")
    return (
        select(Payment.id)
        .where(
            Payment.user_id == user_id,
            Payment.note_id == Note.id,
            Payment.status == STATUS_COMPLETED,
        )
        .exists()
        .label("is_purchased")
    )


class NoteService:
    """
    Business logic layer for note operations.

    Methods take the request's AsyncSession as the first argument and return
    response schemas; the session dependency owns commit/rollback.
    """

    async def create_note(self, db: AsyncSession, creator: User, payload: NoteCreate) -> NoteDetail:
        note = Note(
            creator_id=creator.id,
            title=payload.title,
            subject=payload.subject,
            topics=payload.topics,
            description=payload.description,
            content_type=payload.content_type,
            content_urls=payload.content_urls,
            thumbnail_url=str(payload.thumbnail_url) if payload.thumbnail_url else None,
            free_topics=payload.free_topics,
            paid_topics=payload.paid_topics,
            price_cents=to_cents(payload.price),
            is_published=payload.is_published,
        )
        try:
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating note: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "create_note", "creator_id": str(creator.id)})

        logger.info("Note created: %s by %s (price_cents=%d)", note.id, creator.id, note.price_cents)
        decision = decide_access(note, RequesterContext(user_id=creator.id))
        return NoteDetail.build(note, decision, creator.name, is_authenticated=True)

    async def list_notes(
        self,
        db: AsyncSession,
        requester: Optional[User] = None,
        subject: Optional[str] = None,
        creator_id: Optional[UUID] = None,
        search: Optional[str] = None,
        price_filter: Optional[str] = None,
        sort_by: str = "date_uploaded",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> NoteListData:
        """
        Lists published notes.

        Filters combine with AND:
            subject       case-insensitive exact match
            creator_id    exact match
            search        case-insensitive substring of title or description
            price_filter  'free' (price 0) or 'paid' (price > 0)
        """
        conditions = [Note.is_published.is_(True)]
        if subject:
            conditions.append(func.lower(Note.subject) == subject.strip().lower())
        if creator_id:
            conditions.append(Note.creator_id == creator_id)
        if search:
            needle = search.strip().lower()
            conditions.append(
                or_(
                    func.lower(Note.title).contains(needle, autoescape=True),
                    func.lower(Note.description).contains(needle, autoescape=True),
                )
            )
        if price_filter == "free":
            conditions.append(Note.price_cents == 0)
        elif price_filter == "paid":
            conditions.append(Note.price_cents > 0)

        column = SORT_COLUMNS.get(sort_by, Note.date_uploaded)
        direction = asc if sort_order == "asc" else desc

        try:
            total = (
                await db.execute(select(func.count()).select_from(Note).where(*conditions))
            ).scalar_one()

            result = await db.execute(
                select(Note, User.name)
                .join(User, User.id == Note.creator_id)
                .where(*conditions)
                .order_by(direction(column), direction(Note.id))
                .limit(limit)
                .offset(offset)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "list_notes"})

        return NoteListData(
            notes=[NoteSummary.from_note(note, creator_name) for note, creator_name in rows],
            pagination=Pagination.build(total=total, limit=limit, offset=offset),
            is_authenticated=requester is not None,
        )

    async def get_note_detail(
        self,
        db: AsyncSession,
        note_id: UUID,
        requester: Optional[User] = None,
    ) -> NoteDetail:
        """
        Loads a note with the requester's purchase status in one query and
        applies the access policy. Unpublished notes are visible to their
        creator only.
        """
        requester_id = requester.id if requester else None
        try:
            result = await db.execute(
                select(Note, User.name, purchased_flag(requester_id))
                .join(User, User.id == Note.creator_id)
                .where(Note.id == note_id)
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(context={"operation": "get_note", "note_id": str(note_id)})

        if row is None:
            raise NotFoundError(message=MSG_NOT_FOUND, resource="note", resource_id=str(note_id))

        note, creator_name, is_purchased = row
        if not note.is_published and note.creator_id != requester_id:
            raise NotFoundError(message=MSG_NOT_FOUND, resource="note", resource_id=str(note_id))

        decision = decide_access(
            note,
            RequesterContext(user_id=requester_id, is_purchased=bool(is_purchased)),
        )
        return NoteDetail.build(note, decision, creator_name, is_authenticated=requester is not None)

    async def update_note(
        self,
        db: AsyncSession,
        note_id: UUID,
        creator: User,
        payload: NoteUpdate,
    ) -> NoteDetail:
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError(message="No fields provided for update")

        if "price" in changes:
            changes["price_cents"] = to_cents(changes.pop("price"))
        if "thumbnail_url" in changes and changes["thumbnail_url"] is not None:
            changes["thumbnail_url"] = str(changes["thumbnail_url"])

        try:
            result = await db.execute(
                select(Note).where(Note.id == note_id, Note.creator_id == creator.id)
            )
            note = result.scalar_one_or_none()
            if note is None:
                raise NotFoundError(message=MSG_NOT_OWNED_UPDATE, resource="note", resource_id=str(note_id))

            for field, value in changes.items():
                setattr(note, field, value)
            note.date_modified = datetime.now(timezone.utc)
            await db.flush()
        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating note %s: %s", note_id, str(e))
            raise DatabaseError(context={"operation": "update_note", "note_id": str(note_id)})

        logger.info("Note updated: %s fields=%s", note_id, sorted(changes))
        return await self.get_note_detail(db, note_id, creator)

    async def delete_note(self, db: AsyncSession, note_id: UUID, creator: User) -> None:
        try:
            result = await db.execute(
                delete(Note).where(Note.id == note_id, Note.creator_id == creator.id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(context={"operation": "delete_note", "note_id": str(note_id)})

        if result.rowcount == 0:
            raise NotFoundError(message=MSG_NOT_OWNED_DELETE, resource="note", resource_id=str(note_id))
        logger.info("Note deleted: %s by %s", note_id, creator.id)


note_service = NoteService()
