"""
User endpoints:
  POST /users        - create a user (email must be unique)
  GET  /users        - list users
  GET  /users/{id}   - fetch a user with their groups and liked posts
"""

from fastapi import APIRouter, Depends, Query, status

from socialhub.deps import get_broadcaster, get_relationships
from socialhub.realtime import events
from socialhub.realtime.broadcaster import Broadcaster
from socialhub.relationships import RelationshipStore
from socialhub.schemas import UserCreate, UserResponse

router = APIRouter()


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    store: RelationshipStore = Depends(get_relationships),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    profile = body.profile.model_dump() if body.profile else None
    user = await store.create_user(body.name, body.email, profile)
    await events.publish_user_created(broadcaster, user)
    return user


@router.get("/", response_model=list[UserResponse])
async def list_users(
    limit: int = Query(50, ge=1, le=500),
    store: RelationshipStore = Depends(get_relationships),
):
    return await store.list_users(limit=limit)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, store: RelationshipStore = Depends(get_relationships)):
    return await store.get_user(user_id)
