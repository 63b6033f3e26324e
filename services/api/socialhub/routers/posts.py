"""
Post endpoints:
  POST /posts                 - create a post (optionally inside a group)
  GET  /posts                 - list posts, newest first (?group_id= filter)
  GET  /posts/{id}            - fetch a single post
  POST /posts/{id}/like       - like a post (idempotent)
  GET  /posts/{id}/comments   - comments, oldest first
  POST /posts/{id}/comments   - comment on a post
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from socialhub.deps import get_broadcaster, get_relationships
from socialhub.realtime import events
from socialhub.realtime.broadcaster import Broadcaster
from socialhub.relationships import RelationshipStore
from socialhub.schemas import (
    LikeRequest,
    LikeResponse,
    MessageCreate,
    MessageResponse,
    PostCreate,
    PostResponse,
)

router = APIRouter()


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Author (and group, when given) must exist; otherwise 404 and nothing is stored."""
    post = await store.create_post(body.content, body.author_id, body.group_id)
    await events.publish_post_created(broadcaster, post)
    return post


@router.get("/", response_model=list[PostResponse])
async def list_posts(
    group_id: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    store: RelationshipStore = Depends(get_relationships),
):
    return await store.list_posts(group_id=group_id, limit=limit)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, store: RelationshipStore = Depends(get_relationships)):
    return await store.get_post(post_id)


@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: str,
    body: LikeRequest,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    post, user = await store.like_post(body.user_id, post_id)
    await events.publish_post_liked(broadcaster, post)
    return {"message": "Post liked", "post": post, "user": user}


@router.get("/{post_id}/comments", response_model=list[MessageResponse])
async def list_comments(post_id: str, store: RelationshipStore = Depends(get_relationships)):
    return await store.list_messages(post_id, "post")


@router.post(
    "/{post_id}/comments",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: str,
    body: MessageCreate,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    message = await store.create_message(body.content, body.author_id, post_id, "post")
    await events.publish_message_created(broadcaster, message)
    return message
