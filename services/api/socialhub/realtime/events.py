"""Realtime publishers: build the payload for a committed change and broadcast it.

Called by both the REST routers and the Socket.IO handlers, always after the
relationship store returned. They must not define server instances or
connection handlers.
"""
from typing import Any

from socialhub.entities import Entity, Group, Message, Post, User
from socialhub.realtime.broadcaster import Broadcaster

USER_CREATED = "userCreated"
GROUP_CREATED = "groupCreated"
GROUP_UPDATED = "groupUpdated"
POST_CREATED = "postCreated"
POST_LIKED = "postLiked"
COMMENT_ADDED = "commentAdded"
NEW_MESSAGE = "newMessage"


def build_payload(entity: Entity) -> dict[str, Any]:
    return entity.model_dump(mode="json")


async def publish_user_created(broadcaster: Broadcaster, user: User) -> None:
    await broadcaster.broadcast(USER_CREATED, build_payload(user))


async def publish_group_created(broadcaster: Broadcaster, group: Group) -> None:
    await broadcaster.broadcast(GROUP_CREATED, build_payload(group))


async def publish_group_updated(broadcaster: Broadcaster, group: Group) -> None:
    """Someone joined the group; observers re-render its member list."""
    await broadcaster.broadcast(GROUP_UPDATED, build_payload(group))


async def publish_post_created(broadcaster: Broadcaster, post: Post) -> None:
    await broadcaster.broadcast(POST_CREATED, build_payload(post))


async def publish_post_liked(broadcaster: Broadcaster, post: Post) -> None:
    await broadcaster.broadcast(POST_LIKED, build_payload(post))


async def publish_message_created(broadcaster: Broadcaster, message: Message) -> None:
    event = COMMENT_ADDED if message.target_kind == "post" else NEW_MESSAGE
    await broadcaster.broadcast(event, build_payload(message))
