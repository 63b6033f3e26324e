"""Socket.IO transport for realtime clients.

Every Socket.IO session is registered as a broadcaster observer on connect,
so it receives every change event, including the ones it caused itself.

Inbound events (payload keys are camelCase, as the browser clients send them):
- `join`        { userId, groupId }
- `like`        { userId, postId }
- `postMessage` { authorId, targetId, content, targetKind? }
- `newPost`     { authorId, content, groupId? }

Each inbound handler goes through the same relationship store as the REST
API and answers with an ack: `{"ok": true, "data": ...}` on success or
`{"ok": false, "error": <code>, "detail": <text>}` on a typed failure.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import socketio

from socialhub.config import settings
from socialhub.errors import HubError, ValidationFailure
from socialhub.realtime import events
from socialhub.realtime.broadcaster import Broadcaster
from socialhub.relationships import RelationshipStore

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=settings.cors_allowed_origins,
    logger=False,
    engineio_logger=False,
)

_store: Optional[RelationshipStore] = None
_broadcaster: Optional[Broadcaster] = None


def bind(store: RelationshipStore, broadcaster: Broadcaster) -> None:
    """Attach the process's store and broadcaster; called from the app lifespan."""
    global _store, _broadcaster
    _store = store
    _broadcaster = broadcaster


def unbind() -> None:
    global _store, _broadcaster
    _store = None
    _broadcaster = None


def _runtime() -> tuple[RelationshipStore, Broadcaster]:
    if _store is None or _broadcaster is None:
        raise RuntimeError("Socket.IO handlers not bound (call bind() at startup)")
    return _store, _broadcaster


def create_asgi_app(other_asgi_app: Any) -> socketio.ASGIApp:
    return socketio.ASGIApp(
        sio,
        other_asgi_app=other_asgi_app,
        socketio_path=settings.socketio_path,
    )


def _field(data: dict[str, Any], name: str, required: bool = True) -> Optional[str]:
    value = data.get(name)
    if value is None or value == "":
        if required:
            msg = f"'{name}' is required"
            raise ValidationFailure(msg)
        return None
    if not isinstance(value, str):
        msg = f"'{name}' must be a string"
        raise ValidationFailure(msg)
    return value


async def _dispatch(
    sid: str,
    event: str,
    data: Any,
    action: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    try:
        if not isinstance(data, dict):
            msg = "payload must be an object"
            raise ValidationFailure(msg)
        result = await action(data)
    except HubError as exc:
        logger.info("Socket %s event '%s' rejected: %s", sid, event, exc.detail)
        return {"ok": False, "error": exc.code, "detail": exc.detail}
    return {"ok": True, "data": result}


# ─────────────────────────── Connection ──────────────────────────────────


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    _, broadcaster = _runtime()

    async def sink(event: str, payload: dict[str, Any]) -> None:
        await sio.emit(event, payload, to=sid)

    broadcaster.connect(sid, sink)
    logger.info("New client connected: %s", sid)


@sio.event
async def disconnect(sid: str, reason: Any = None):
    _, broadcaster = _runtime()
    broadcaster.disconnect(sid)
    logger.info("Client disconnected: %s", sid)


# ─────────────────────────── Inbound events ──────────────────────────────


@sio.event
async def join(sid: str, data: Any):
    store, broadcaster = _runtime()

    async def action(payload: dict[str, Any]) -> dict[str, Any]:
        group, user = await store.join_group(_field(payload, "userId"), _field(payload, "groupId"))
        await events.publish_group_updated(broadcaster, group)
        return {"group": events.build_payload(group), "user": events.build_payload(user)}

    return await _dispatch(sid, "join", data, action)


@sio.event
async def like(sid: str, data: Any):
    store, broadcaster = _runtime()

    async def action(payload: dict[str, Any]) -> dict[str, Any]:
        post, user = await store.like_post(_field(payload, "userId"), _field(payload, "postId"))
        await events.publish_post_liked(broadcaster, post)
        return {"post": events.build_payload(post), "user": events.build_payload(user)}

    return await _dispatch(sid, "like", data, action)


@sio.on("postMessage")
async def post_message(sid: str, data: Any):
    store, broadcaster = _runtime()

    async def action(payload: dict[str, Any]) -> dict[str, Any]:
        message = await store.create_message(
            _field(payload, "content"),
            _field(payload, "authorId"),
            _field(payload, "targetId"),
            _field(payload, "targetKind", required=False),
        )
        await events.publish_message_created(broadcaster, message)
        return events.build_payload(message)

    return await _dispatch(sid, "postMessage", data, action)


@sio.on("newPost")
async def new_post(sid: str, data: Any):
    store, broadcaster = _runtime()

    async def action(payload: dict[str, Any]) -> dict[str, Any]:
        post = await store.create_post(
            _field(payload, "content"),
            _field(payload, "authorId"),
            _field(payload, "groupId", required=False),
        )
        await events.publish_post_created(broadcaster, post)
        return events.build_payload(post)

    return await _dispatch(sid, "newPost", data, action)
