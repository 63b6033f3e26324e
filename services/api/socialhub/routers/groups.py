"""
Group endpoints:
  POST /groups                - create a group
  GET  /groups                - list groups
  GET  /groups/{id}           - fetch a group with its member profiles
  POST /groups/{id}/join      - add a user to the group (idempotent)
  GET  /groups/{id}/messages  - chat history, oldest first
  POST /groups/{id}/messages  - post a chat message

Every mutation is broadcast to all realtime observers once it has committed.
"""

from fastapi import APIRouter, Depends, Query, status

from socialhub.deps import get_broadcaster, get_relationships
from socialhub.realtime import events
from socialhub.realtime.broadcaster import Broadcaster
from socialhub.relationships import RelationshipStore
from socialhub.schemas import (
    GroupCreate,
    GroupDetailResponse,
    GroupResponse,
    JoinRequest,
    JoinResponse,
    MessageCreate,
    MessageResponse,
)

router = APIRouter()


@router.post("/", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    body: GroupCreate,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    group = await store.create_group(body.name, body.description)
    await events.publish_group_created(broadcaster, group)
    return group


@router.get("/", response_model=list[GroupResponse])
async def list_groups(
    limit: int = Query(50, ge=1, le=500),
    store: RelationshipStore = Depends(get_relationships),
):
    return await store.list_groups(limit=limit)


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(group_id: str, store: RelationshipStore = Depends(get_relationships)):
    group = await store.get_group(group_id)
    members = await store.list_members(group_id)
    return {**group.model_dump(), "member_users": members}


@router.post("/{group_id}/join", response_model=JoinResponse)
async def join_group(
    group_id: str,
    body: JoinRequest,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Many-to-many join: the user lands in `group.members` and the group in
    `user.groups`. Joining twice changes nothing but still answers 200.
    """
    group, user = await store.join_group(body.user_id, group_id)
    await events.publish_group_updated(broadcaster, group)
    return {"message": "User joined the group", "group": group, "user": user}


@router.get("/{group_id}/messages", response_model=list[MessageResponse])
async def list_group_messages(
    group_id: str, store: RelationshipStore = Depends(get_relationships)
):
    return await store.list_messages(group_id, "group")


@router.post(
    "/{group_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_group_message(
    group_id: str,
    body: MessageCreate,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    message = await store.create_message(body.content, body.author_id, group_id, "group")
    await events.publish_message_created(broadcaster, message)
    return message
