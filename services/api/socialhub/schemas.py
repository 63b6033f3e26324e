"""
Pydantic request / response schemas for the API layer.
Kept separate from the entity records so the transport can evolve
independently of what the document store holds.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ──────────────────────────── Users ───────────────────────────────────────

class ProfileSchema(BaseModel):
    bio: str = ""
    avatar: str = ""

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    profile: Optional[ProfileSchema] = None


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    profile: ProfileSchema
    groups: list[str]
    liked_posts: list[str]
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: str
    name: str
    email: str

    class Config:
        from_attributes = True


# ──────────────────────────── Groups ──────────────────────────────────────

class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""


class GroupResponse(BaseModel):
    id: str
    name: str
    description: str
    members: list[str]
    created_at: datetime

    class Config:
        from_attributes = True


class GroupDetailResponse(GroupResponse):
    member_users: list[UserSummary]


class JoinRequest(BaseModel):
    user_id: str


class JoinResponse(BaseModel):
    message: str
    group: GroupResponse
    user: UserResponse


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(BaseModel):
    author_id: str
    content: str = Field(..., min_length=1)
    group_id: Optional[str] = None


class PostResponse(BaseModel):
    id: str
    content: str
    author_id: str
    group_id: Optional[str]
    liked_by: list[str]
    created_at: datetime

    class Config:
        from_attributes = True


class LikeRequest(BaseModel):
    user_id: str


class LikeResponse(BaseModel):
    message: str
    post: PostResponse
    user: UserResponse


# ──────────────────────────── Messages ────────────────────────────────────

class MessageCreate(BaseModel):
    """A comment on a post or a chat message in a group."""
    author_id: str
    content: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    id: str
    content: str
    author_id: str
    target_kind: Literal["post", "group"]
    target_id: str
    created_at: datetime

    class Config:
        from_attributes = True
