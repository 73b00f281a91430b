"""
NoteFlow Backend — Notes Route Handlers
=========================================

What:  Note CRUD and the public catalogue under /api/notes.

    POST   /api/notes        create a note                      (creator)
    GET    /api/notes        filtered, sorted, paginated list   (optional auth)
    GET    /api/notes/{id}   detail with access decision        (optional auth)
    PUT    /api/notes/{id}   partial update of an owned note    (creator)
    DELETE /api/notes/{id}   delete an owned note               (creator)

Optional auth:
    Listing and detail work anonymously. A valid token adds ownership and
    purchase flags to the detail view; an invalid one is ignored.
"""

import logging
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import get_db_session
from noteflow.models.user import ROLE_CREATOR, User
from noteflow.schemas.common import ApiResponse
from noteflow.schemas.note import NoteCreate, NoteData, NoteListData, NoteUpdate
from noteflow.security import get_optional_user, require_role
from noteflow.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

require_creator = require_role(ROLE_CREATOR)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[NoteData],
    summary="Publish a new note",
)
async def create_note(
    payload: NoteCreate,
    creator: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[NoteData]:
    note = await note_service.create_note(db, creator, payload)
    return ApiResponse[NoteData](message="Note created successfully", data=NoteData(note=note))


@router.get(
    "",
    response_model=ApiResponse[NoteListData],
    summary="List published notes",
    description=(
        "Published notes only. Filters combine with AND. List items never "
        "include content URLs; use the detail endpoint for content access."
    ),
)
async def list_notes(
    subject: Optional[str] = Query(default=None, max_length=100, description="Case-insensitive exact subject"),
    creator_id: Optional[UUID] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=200, description="Substring of title or description"),
    price_filter: Optional[Literal["free", "paid"]] = Query(default=None),
    sort_by: Literal["date_uploaded", "date_modified", "title", "price", "subject"] = Query(
        default="date_uploaded"
    ),
    sort_order: Literal["asc", "desc"] = Query(default="desc"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    requester: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[NoteListData]:
    result = await note_service.list_notes(
        db,
        requester=requester,
        subject=subject,
        creator_id=creator_id,
        search=search,
        price_filter=price_filter,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    return ApiResponse[NoteListData](message="Notes retrieved successfully", data=result)


@router.get("/{note_id}", response_model=ApiResponse[NoteData], summary="Get a note with access details")
async def get_note(
    note_id: UUID,
    requester: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[NoteData]:
    note = await note_service.get_note_detail(db, note_id, requester)
    return ApiResponse[NoteData](message="Note retrieved successfully", data=NoteData(note=note))


@router.put("/{note_id}", response_model=ApiResponse[NoteData], summary="Update an owned note")
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    creator: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[NoteData]:
    note = await note_service.update_note(db, note_id, creator, payload)
    return ApiResponse[NoteData](message="Note updated successfully", data=NoteData(note=note))


@router.delete("/{note_id}", response_model=ApiResponse[None], summary="Delete an owned note")
async def delete_note(
    note_id: UUID,
    creator: User = Depends(require_creator),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await note_service.delete_note(db, note_id, creator)
    return ApiResponse[None](message="Note deleted successfully")
