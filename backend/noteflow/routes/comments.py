"""
NoteFlow Backend — Comment Route Handlers
===========================================

    POST   /api/comments                   add a comment            (auth, 201)
    GET    /api/comments?note_id=          list + rating summary
    GET    /api/comments/rating/{note_id}  rating summary only
    GET    /api/comments/{id}              one live comment
    PUT    /api/comments/{id}              edit own comment         (auth)
    DELETE /api/comments/{id}              soft-delete own comment  (auth)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from noteflow.database import get_db_session
from noteflow.models.user import User
from noteflow.schemas.comment import (
    CommentCreate,
    CommentData,
    CommentListData,
    CommentUpdate,
    RatingData,
)
from noteflow.schemas.common import ApiResponse
from noteflow.security import get_current_user
from noteflow.services.comment_service import comment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/comments", tags=["Comments"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[CommentData])
async def add_comment(
    payload: CommentCreate,
    author: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CommentData]:
    comment = await comment_service.add_comment(db, author, payload)
    return ApiResponse[CommentData](message="Comment added successfully", data=CommentData(comment=comment))


@router.get("", response_model=ApiResponse[CommentListData])
async def list_comments(
    note_id: UUID = Query(...),
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CommentListData]:
    result = await comment_service.list_comments(db, note_id, limit=limit, offset=offset)
    return ApiResponse[CommentListData](message="Comments retrieved successfully", data=result)


@router.get("/rating/{note_id}", response_model=ApiResponse[RatingData])
async def note_rating(
    note_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[RatingData]:
    rating = await comment_service.rating_summary(db, note_id)
    return ApiResponse[RatingData](message="Rating retrieved successfully", data=RatingData(rating=rating))


@router.get("/{comment_id}", response_model=ApiResponse[CommentData])
async def get_comment(
    comment_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CommentData]:
    comment = await comment_service.get_comment(db, comment_id)
    return ApiResponse[CommentData](message="Comment retrieved successfully", data=CommentData(comment=comment))


@router.put("/{comment_id}", response_model=ApiResponse[CommentData])
async def update_comment(
    comment_id: UUID,
    payload: CommentUpdate,
    author: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[CommentData]:
    comment = await comment_service.update_comment(db, comment_id, author, payload)
    return ApiResponse[CommentData](message="Comment updated successfully", data=CommentData(comment=comment))


@router.delete("/{comment_id}", response_model=ApiResponse[None])
async def delete_comment(
    comment_id: UUID,
    author: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse[None]:
    await comment_service.delete_comment(db, comment_id, author)
    return ApiResponse[None](message="Comment deleted successfully")
