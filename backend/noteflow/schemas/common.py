"""
NoteFlow Backend — Shared Response Schemas
============================================

What:  The response envelope every endpoint returns, plus pagination metadata.

Envelope:
    {
        "success": true,
        "message": "Note purchased successfully",
        "data": {...}
    }

    `data` and `errors` are omitted (not null) when there is nothing to send.
    Error responses are built by the handlers in main.py with the same shape.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, model_serializer

DataT = TypeVar("DataT")


class FieldError(BaseModel):
    field: str = Field(description="Dotted path of the offending field")
    location: Optional[str] = Field(default=None, description="body, query or path")
    message: str


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = Field(default=True)
    message: str = Field(description="Human-readable outcome")
    data: Optional[DataT] = None
    errors: Optional[List[FieldError]] = None

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler):
        payload: Dict[str, Any] = handler(self)
        for key in ("data", "errors"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


class Pagination(BaseModel):
    """Offset pagination metadata; has_more is offset + limit < total."""

    total: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)
    has_more: bool

    @classmethod
    def build(cls, total: int, limit: int, offset: int) -> "Pagination":
        return cls(total=total, limit=limit, offset=offset, has_more=offset + limit < total)
