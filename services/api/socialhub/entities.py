"""
Domain records held by the document store.

Each record carries a literal `kind` tag so a stored document always knows
which collection it belongs to. Relation fields are plain lists: the store
does not give them set semantics, so the relationship store is responsible
for keeping them duplicate-free.

  users    - profile (bio, avatar) + groups joined + posts liked
  groups   - group metadata + member user ids
  posts    - content, author, optional group, users who liked it
  messages - comments on a post or chat messages in a group
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EntityKind(str, Enum):
    USER = "user"
    GROUP = "group"
    POST = "post"
    MESSAGE = "message"


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=_uuid)
    created_at: datetime = Field(default_factory=_now)


class Profile(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    bio: str = Field("", max_length=1000)
    avatar: str = Field("", max_length=2048)


class User(_Record):
    kind: Literal["user"] = "user"
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    profile: Profile = Field(default_factory=Profile)
    groups: list[str] = Field(default_factory=list)
    liked_posts: list[str] = Field(default_factory=list)


class Group(_Record):
    kind: Literal["group"] = "group"
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    members: list[str] = Field(default_factory=list)


class Post(_Record):
    kind: Literal["post"] = "post"
    content: str = Field(..., min_length=1)
    author_id: str
    group_id: Optional[str] = None
    liked_by: list[str] = Field(default_factory=list)


class Message(_Record):
    kind: Literal["message"] = "message"
    content: str = Field(..., min_length=1)
    author_id: str
    target_kind: Literal["post", "group"]
    target_id: str


Entity = Union[User, Group, Post, Message]

ENTITY_TYPES: dict[EntityKind, type[_Record]] = {
    EntityKind.USER: User,
    EntityKind.GROUP: Group,
    EntityKind.POST: Post,
    EntityKind.MESSAGE: Message,
}


def entity_kind(entity: Entity) -> EntityKind:
    return EntityKind(entity.kind)
