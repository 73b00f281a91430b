"""
NoteFlow Backend — Like Route Handlers
========================================

    POST   /api/likes                   toggle like on {note_id}       (auth)
    GET    /api/likes?note_id=          like count
    GET    /api/likes/check/{note_id}   has the caller liked it        (auth)
    GET    /api/likes/note/{note_id}    users who liked a note
    GET    /api/likes/user/liked-notes  notes the caller liked         (auth)
    DELETE /api/likes/{note_id}         explicit unlike                (auth)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import get_db_session
from noteflow.models.user import User
from noteflow.schemas.common import ApiResponse
from noteflow.schemas.engagement import (
    EngagedNotesData,
    EngagedUsersData,
    LikeCountData,
    LikeStatusData,
    LikeToggleData,
    ToggleRequest,
)
from noteflow.security import get_current_user
from noteflow.services.engagement_service import like_service

router = APIRouter(prefix="/api/likes", tags=["Likes"])


@router.post("", response_model=ApiResponse[LikeToggleData])
async def toggle_like(
    payload: ToggleRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[LikeToggleData]:
    liked = await like_service.toggle(db, user, payload.note_id)
    data = LikeToggleData(
        note_id=payload.note_id,
        action="liked" if liked else "unliked",
        like_count=await like_service.count(db, payload.note_id),
        is_liked=liked,
    )
    message = "Note liked successfully" if liked else "Note unliked successfully"
    return ApiResponse[LikeToggleData](message=message, data=data)


@router.get("", response_model=ApiResponse[LikeCountData])
async def like_count(
    note_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[LikeCountData]:
    count = await like_service.count(db, note_id)
    return ApiResponse[LikeCountData](
        message="Like count retrieved successfully",
        data=LikeCountData(note_id=note_id, like_count=count),
    )


@router.get("/check/{note_id}", response_model=ApiResponse[LikeStatusData])
async def check_like(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[LikeStatusData]:
    data = LikeStatusData(
        note_id=note_id,
        is_liked=await like_service.is_active(db, user, note_id),
        like_count=await like_service.count(db, note_id),
    )
    return ApiResponse[LikeStatusData](message="Like status retrieved successfully", data=data)


@router.get("/note/{note_id}", response_model=ApiResponse[EngagedUsersData])
async def note_likers(
    note_id: UUID,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[EngagedUsersData]:
    result = await like_service.list_users(db, note_id, limit=limit, offset=offset)
    return ApiResponse[EngagedUsersData](message="Likes retrieved successfully", data=result)


@router.get("/user/liked-notes", response_model=ApiResponse[EngagedNotesData])
async def liked_notes(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[EngagedNotesData]:
    result = await like_service.list_notes(db, user, limit=limit, offset=offset)
    return ApiResponse[EngagedNotesData](message="Liked notes retrieved successfully", data=result)


@router.delete("/{note_id}", response_model=ApiResponse[None])
async def unlike(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await like_service.remove(db, user, note_id)
    return ApiResponse[None](message="Like removed successfully")
