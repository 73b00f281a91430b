"""
NoteFlow Backend — Bookmark Route Handlers
============================================

    POST   /api/bookmarks                        toggle bookmark on {note_id}  (auth)
    GET    /api/bookmarks                        the caller's bookmarked notes (auth)
    GET    /api/bookmarks/stats                  counts for the caller         (auth)
    GET    /api/bookmarks/check/{note_id}        is it bookmarked by caller    (auth)
    GET    /api/bookmarks/note/{note_id}         bookmark count
    GET    /api/bookmarks/note/{note_id}/users   users who bookmarked a note
    DELETE /api/bookmarks/{note_id}              explicit removal              (auth)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import get_db_session
from noteflow.models.user import User
from noteflow.schemas.common import ApiResponse
from noteflow.schemas.engagement import (
    BookmarkCountData,
    BookmarkStatsData,
    BookmarkStatusData,
    BookmarkToggleData,
    EngagedNotesData,
    EngagedUsersData,
    ToggleRequest,
)
from noteflow.security import get_current_user
from noteflow.services.engagement_service import bookmark_service

router = APIRouter(prefix="/api/bookmarks", tags=["Bookmarks"])


@router.post("", response_model=ApiResponse[BookmarkToggleData])
async def toggle_bookmark(
    payload: ToggleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookmarkToggleData]:
    added = await bookmark_service.toggle(db, user, payload.note_id)
    data = BookmarkToggleData(
        note_id=payload.note_id,
        action="added" if added else "removed",
        bookmark_count=await bookmark_service.count(db, payload.note_id),
        is_bookmarked=added,
    )
    message = "Note bookmarked successfully" if added else "Bookmark removed successfully"
    return ApiResponse[BookmarkToggleData](message=message, data=data)


@router.get("", response_model=ApiResponse[EngagedNotesData])
async def my_bookmarks(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[EngagedNotesData]:
    result = await bookmark_service.list_notes(db, user, limit=limit, offset=offset)
    return ApiResponse[EngagedNotesData](message="Bookmarks retrieved successfully", data=result)


@router.get("/stats", response_model=ApiResponse[BookmarkStatsData])
async def bookmark_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookmarkStatsData]:
    stats = await bookmark_service.stats(db, user)
    return ApiResponse[BookmarkStatsData](
        message="Bookmark statistics retrieved successfully",
        data=BookmarkStatsData(stats=stats),
    )


@router.get("/check/{note_id}", response_model=ApiResponse[BookmarkStatusData])
async def check_bookmark(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookmarkStatusData]:
    is_bookmarked = await bookmark_service.is_active(db, user, note_id)
    return ApiResponse[BookmarkStatusData](
        message="Bookmark status retrieved successfully",
        data=BookmarkStatusData(note_id=note_id, is_bookmarked=is_bookmarked),
    )


@router.get("/note/{note_id}", response_model=ApiResponse[BookmarkCountData])
async def bookmark_count(
    note_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[BookmarkCountData]:
    count = await bookmark_service.count(db, note_id)
    return ApiResponse[BookmarkCountData](
        message="Bookmark count retrieved successfully",
        data=BookmarkCountData(note_id=note_id, bookmark_count=count),
    )


@router.get("/note/{note_id}/users", response_model=ApiResponse[EngagedUsersData])
async def note_bookmarkers(
    note_id: UUID,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[EngagedUsersData]:
    result = await bookmark_service.list_users(db, note_id, limit=limit, offset=offset)
    return ApiResponse[EngagedUsersData](message="Bookmarks retrieved successfully", data=result)


@router.delete("/{note_id}", response_model=ApiResponse[None])
async def remove_bookmark(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await bookmark_service.remove(db, user, note_id)
    return ApiResponse[None](message="Bookmark removed successfully")
