"""
Relationship store: validated, idempotent mutations over the document store.

Write paths:
  create_user / create_group              plain inserts (email is unique)
  create_post / create_message            inserts whose references must resolve
  join_group  (Group.members <-> User.groups)
  like_post   (Post.liked_by <-> User.liked_posts)

The document store is list-based and only atomic per document, so the two
bidirectional operations follow one protocol:

  1. take the per-entity locks for both documents (sorted order)
  2. re-read both documents while holding the locks
  3. append to each list only if the value is absent
  4. save both; if the second save fails, restore the first

Concurrent joins or likes for the same pair therefore observe each other's
writes instead of racing on a stale read.
"""
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opentelemetry import trace

from socialhub.entities import Entity, EntityKind, Group, Message, Post, User, entity_kind
from socialhub.errors import (
    DuplicateEmail,
    HubError,
    NotFound,
    StorageUnavailable,
    UniqueConstraintViolation,
    ValidationFailure,
)
from socialhub.locks import KeyedLocks
from socialhub.store.base import DocumentStore
from socialhub.telemetry import MUTATIONS_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@contextmanager
def _observe(operation: str) -> Iterator[trace.Span]:
    with tracer.start_as_current_span(operation) as span:
        try:
            yield span
        except HubError as exc:
            span.set_attribute("error.code", exc.code)
            MUTATIONS_TOTAL.labels(operation=operation, outcome=exc.code).inc()
            raise
        MUTATIONS_TOTAL.labels(operation=operation, outcome="ok").inc()


class RelationshipStore:
    def __init__(self, store: DocumentStore, locks: Optional[KeyedLocks] = None) -> None:
        self._store = store
        self._locks = locks if locks is not None else KeyedLocks()

    # ─────────────────────────── Creation ────────────────────────────────

    async def create_user(
        self, name: str, email: str, profile: Optional[dict[str, Any]] = None
    ) -> User:
        with _observe("create_user"):
            email = email.strip().lower()
            async with self._locks.hold(("email", email)):
                if await self._store.find(EntityKind.USER, {"email": email}, limit=1):
                    raise DuplicateEmail(email)
                try:
                    user = await self._store.create(
                        EntityKind.USER,
                        {"name": name, "email": email, "profile": profile or {}},
                    )
                except UniqueConstraintViolation as exc:
                    # Another process inserted the same email first
                    raise DuplicateEmail(email) from exc

        logger.info("Created user %s (id=%s)", user.email, user.id)
        return user

    async def create_group(self, name: str, description: str = "") -> Group:
        with _observe("create_group"):
            group = await self._store.create(
                EntityKind.GROUP, {"name": name, "description": description or ""}
            )
        logger.info("Created group %s (id=%s)", group.name, group.id)
        return group

    async def create_post(
        self, content: str, author_id: str, group_id: Optional[str] = None
    ) -> Post:
        with _observe("create_post") as span:
            span.set_attribute("post.author_id", author_id)
            await self._require(EntityKind.USER, author_id)
            if group_id:
                await self._require(EntityKind.GROUP, group_id)
            post = await self._store.create(
                EntityKind.POST,
                {"content": content, "author_id": author_id, "group_id": group_id or None},
            )
            span.set_attribute("post.id", post.id)

        logger.info("Post created: %s by user %s", post.id, author_id)
        return post

    async def create_message(
        self,
        content: str,
        author_id: str,
        target_id: str,
        target_kind: Optional[str] = None,
    ) -> Message:
        """
        Attach a message to a post (a comment) or a group (a chat message).

        With no `target_kind` the target is looked up as a post first, then as
        a group.
        """
        with _observe("create_message") as span:
            span.set_attribute("message.author_id", author_id)
            await self._require(EntityKind.USER, author_id)
            target = await self._resolve_target(target_id, target_kind)
            message = await self._store.create(
                EntityKind.MESSAGE,
                {
                    "content": content,
                    "author_id": author_id,
                    "target_kind": target.kind,
                    "target_id": target.id,
                },
            )
            span.set_attribute("message.id", message.id)

        logger.info(
            "Message %s by user %s on %s %s",
            message.id, author_id, message.target_kind, message.target_id,
        )
        return message

    # ─────────────────────────── Relations ───────────────────────────────

    async def join_group(self, user_id: str, group_id: str) -> tuple[Group, User]:
        with _observe("join_group") as span:
            span.set_attribute("group.id", group_id)
            span.set_attribute("user.id", user_id)
            async with self._locks.hold((EntityKind.GROUP, group_id), (EntityKind.USER, user_id)):
                group = await self._require(EntityKind.GROUP, group_id)
                user = await self._require(EntityKind.USER, user_id)
                changed = await self._link(group, "members", user, "groups")
            span.set_attribute("relation.changed", changed)

        if changed:
            logger.info("User %s joined group %s", user_id, group_id)
        return group, user

    async def like_post(self, user_id: str, post_id: str) -> tuple[Post, User]:
        with _observe("like_post") as span:
            span.set_attribute("post.id", post_id)
            span.set_attribute("user.id", user_id)
            async with self._locks.hold((EntityKind.POST, post_id), (EntityKind.USER, user_id)):
                post = await self._require(EntityKind.POST, post_id)
                user = await self._require(EntityKind.USER, user_id)
                changed = await self._link(post, "liked_by", user, "liked_posts")
            span.set_attribute("relation.changed", changed)

        if changed:
            logger.info("User %s liked post %s", user_id, post_id)
        return post, user

    # ─────────────────────────── Reads ───────────────────────────────────

    async def get_user(self, user_id: str) -> User:
        return await self._require(EntityKind.USER, user_id)

    async def get_group(self, group_id: str) -> Group:
        return await self._require(EntityKind.GROUP, group_id)

    async def get_post(self, post_id: str) -> Post:
        return await self._require(EntityKind.POST, post_id)

    async def list_users(self, limit: Optional[int] = None) -> list[User]:
        return await self._store.find(EntityKind.USER, order_by="created_at", limit=limit)

    async def list_groups(self, limit: Optional[int] = None) -> list[Group]:
        return await self._store.find(EntityKind.GROUP, order_by="created_at", limit=limit)

    async def list_posts(
        self, group_id: Optional[str] = None, limit: Optional[int] = None
    ) -> list[Post]:
        """Newest first, optionally restricted to one group."""
        filters = {"group_id": group_id} if group_id else None
        return await self._store.find(
            EntityKind.POST, filters, order_by="created_at", descending=True, limit=limit
        )

    async def list_members(self, group_id: str) -> list[User]:
        group = await self._require(EntityKind.GROUP, group_id)
        members = []
        for user_id in group.members:
            user = await self._store.find_by_id(EntityKind.USER, user_id)
            if user is not None:
                members.append(user)
        return members

    async def list_messages(self, target_id: str, target_kind: str) -> list[Message]:
        """Messages under a post or group, oldest first."""
        target = await self._resolve_target(target_id, target_kind)
        return await self._store.find(
            EntityKind.MESSAGE,
            {"target_kind": target.kind, "target_id": target.id},
            order_by="created_at",
        )

    # ─────────────────────────── Helpers ─────────────────────────────────

    async def _require(self, kind: EntityKind, entity_id: str) -> Entity:
        entity = await self._store.find_by_id(kind, entity_id) if entity_id else None
        if entity is None:
            raise NotFound(kind.value, entity_id)
        return entity

    async def _resolve_target(self, target_id: str, target_kind: Optional[str]) -> Entity:
        if target_kind is None:
            for kind in (EntityKind.POST, EntityKind.GROUP):
                target = await self._store.find_by_id(kind, target_id) if target_id else None
                if target is not None:
                    return target
            raise NotFound("target", target_id)
        if target_kind not in (EntityKind.POST.value, EntityKind.GROUP.value):
            msg = f"target kind must be 'post' or 'group', got {target_kind!r}"
            raise ValidationFailure(msg)
        return await self._require(EntityKind(target_kind), target_id)

    async def _link(self, left: Entity, left_field: str, right: Entity, right_field: str) -> bool:
        """
        Add right.id to left.<left_field> and left.id to right.<right_field>.

        Both documents must be freshly read under their locks. Returns whether
        anything was written.
        """
        left_before = list(getattr(left, left_field))
        right_before = list(getattr(right, right_field))
        left_changed = right.id not in left_before
        right_changed = left.id not in right_before

        if left_changed:
            setattr(left, left_field, left_before + [right.id])
            await self._save(left)
        if right_changed:
            setattr(right, right_field, right_before + [left.id])
            try:
                await self._save(right)
            except BaseException:
                # Includes cancellation: the left side must not stay half-linked
                if left_changed:
                    await self._restore(left, left_field, left_before)
                raise
        return left_changed or right_changed

    async def _save(self, entity: Entity) -> None:
        if not await self._store.save(entity):
            raise StorageUnavailable(f"{entity.kind.capitalize()} {entity.id} could not be saved")

    async def _restore(self, entity: Entity, field: str, value: list) -> None:
        setattr(entity, field, value)
        try:
            await self._save(entity)
        except Exception:
            logger.exception(
                "Could not restore %s %s.%s after a failed relation update",
                entity_kind(entity).value, entity.id, field,
            )
