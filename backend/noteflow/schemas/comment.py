"""
NoteFlow Backend — Comment Schemas
====================================

What:  Bodies for adding and editing comments, and the listing payload with
       the note's rating summary.

Text is trimmed before the length check, so "   " is rejected as empty.
Ratings are optional integers from 1 to 5; null clears a rating on edit.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, StrictInt, field_validator

from noteflow.schemas.common import Pagination


class _CommentBody(BaseModel):
    text: str = Field(min_length=1, max_length=5000)
    rating: Optional[StrictInt] = Field(default=None, ge=1, le=5)

    model_config = {"extra": "forbid"}

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class CommentCreate(_CommentBody):
    note_id: uuid.UUID


class CommentUpdate(_CommentBody):
    """Rating is only changed when the body contains the key."""


class CommentOut(BaseModel):
    id: uuid.UUID
    note_id: uuid.UUID
    user_id: uuid.UUID
    user_name: Optional[str] = None
    user_profile_picture: Optional[str] = None
    text: str
    rating: Optional[int] = None
    created_at: datetime
    edited_at: Optional[datetime] = None
    is_edited: bool = False


class RatingSummary(BaseModel):
    note_id: uuid.UUID
    average_rating: float = Field(description="Mean of non-null ratings, one decimal place")
    rating_count: int


class CommentData(BaseModel):
    comment: CommentOut


class CommentListData(BaseModel):
    comments: List[CommentOut]
    pagination: Pagination
    rating: RatingSummary


class RatingData(BaseModel):
    rating: RatingSummary
