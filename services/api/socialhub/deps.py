"""
FastAPI dependencies.

The relationship store and the broadcaster are created by the app lifespan
and live on `app.state`; handlers receive them per request instead of
reaching for module globals.
"""
from fastapi import Request

from socialhub.realtime.broadcaster import Broadcaster
from socialhub.relationships import RelationshipStore


def get_relationships(request: Request) -> RelationshipStore:
    return request.app.state.relationships


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
