"""
NoteFlow Backend — Authentication & Account Schemas
=====================================================

What:  Request bodies for signup, login and profile updates, and the public
       user representation returned by every auth endpoint.
Why:   Bodies forbid unknown fields, so a client cannot smuggle in `role`
       on a profile update or `password_hash` on signup.

Aliases:
    Signup accepts both the Python field names and the camelCase names
    older clients send (userType, confirmPassword, profilePicture).
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


class SignupRequest(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    confirm_password: str = Field(alias="confirmPassword")
    role: Literal["creator", "viewer"] = Field(alias="userType")
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture", max_length=500)

    model_config = {"extra": "forbid", "populate_by_name": True}

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    model_config = {"extra": "forbid"}


class ProfileUpdateRequest(BaseModel):
    """Only name and picture are editable; role and email are fixed at signup."""

    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture", max_length=500)

    model_config = {"extra": "forbid", "populate_by_name": True}

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class UserPublic(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str = Field(description="creator or viewer")
    profile_picture: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthData(BaseModel):
    user: UserPublic
    token: str = Field(description="Bearer token, valid for seven days by default")


class UserData(BaseModel):
    user: UserPublic
