"""
NoteFlow Backend — Like & Bookmark Schemas
============================================

What:  Payloads for the two toggle resources. Likes and bookmarks share the
       same service; only the field names the client sees differ.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from noteflow.schemas.common import Pagination
from noteflow.schemas.note import NoteSummary


class ToggleRequest(BaseModel):
    note_id: uuid.UUID

    model_config = {"extra": "forbid"}


class EngagedUser(BaseModel):
    user_id: uuid.UUID
    name: str
    profile_picture: Optional[str] = None
    created_at: datetime


class EngagedUsersData(BaseModel):
    note_id: uuid.UUID
    users: List[EngagedUser]
    pagination: Pagination


class EngagedNote(NoteSummary):
    engaged_at: datetime


class EngagedNotesData(BaseModel):
    notes: List[EngagedNote]
    pagination: Pagination


# ── Likes ─────────────────────────────────────────────────────────────────

class LikeToggleData(BaseModel):
    note_id: uuid.UUID
    action: Literal["liked", "unliked"]
    like_count: int
    is_liked: bool


class LikeCountData(BaseModel):
    note_id: uuid.UUID
    like_count: int


class LikeStatusData(BaseModel):
    note_id: uuid.UUID
    is_liked: bool
    like_count: int


# ── Bookmarks ─────────────────────────────────────────────────────────────

class BookmarkToggleData(BaseModel):
    note_id: uuid.UUID
    action: Literal["added", "removed"]
    bookmark_count: int
    is_bookmarked: bool


class BookmarkCountData(BaseModel):
    note_id: uuid.UUID
    bookmark_count: int


class BookmarkStatusData(BaseModel):
    note_id: uuid.UUID
    is_bookmarked: bool


class BookmarkStats(BaseModel):
    total_bookmarks: int
    subjects_count: int
    creators_count: int


class BookmarkStatsData(BaseModel):
    stats: BookmarkStats
