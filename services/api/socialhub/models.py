"""
SQLAlchemy ORM models, one table per document collection.

Tables:
  users    - profile (JSON bio + avatar); `groups` and `liked_posts` are JSON id lists
  groups   - group metadata; `members` is a JSON id list
  posts    - post content + author; `liked_by` is a JSON id list
  messages - comments (target_kind='post') and chat messages (target_kind='group')

Relation lists mirror the document layout of the store: each row is saved as
a whole, so a single-row update is the unit of atomicity.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column

from socialhub.database import Base

# MySQL DATETIME keeps whole seconds unless a fractional precision is given
Timestamp = DateTime(timezone=True).with_variant(mysql.DATETIME(fsp=6), "mysql")


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    profile: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    groups: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    liked_posts: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(Timestamp, nullable=False)


class GroupRow(Base):
    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    members: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(Timestamp, nullable=False)


class PostRow(Base):
    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    group_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("groups.id"), nullable=True
    )
    liked_by: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(Timestamp, nullable=False)

    __table_args__ = (
        Index("idx_posts_group", "group_id"),
        Index("idx_posts_created", "created_at"),
    )


class MessageRow(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    target_kind: Mapped[str] = mapped_column(String(10), nullable=False)
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, nullable=False)

    __table_args__ = (
        # Conversation lookup: all messages under one post or group, in order
        Index("idx_messages_target", "target_kind", "target_id", "created_at"),
    )
