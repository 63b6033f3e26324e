"""
Social Hub API entry point.

Startup sequence:
  1. Configure OTel tracing (exported to Jaeger over OTLP)
  2. Create tables if not present
  3. Build the relationship store and the realtime broadcaster
  4. Connect to Redis & start the cross-instance relay (when enabled)
  5. Bind the Socket.IO handlers to the store and broadcaster
  6. Expose Prometheus /metrics endpoint

Run with the Socket.IO wrapper so realtime clients and REST share one port:
  uvicorn socialhub.main:asgi_app
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from socialhub.config import settings
from socialhub.database import close_db, init_db
from socialhub.errors import (
    HubError,
    NotFound,
    StorageUnavailable,
    UniqueConstraintViolation,
    ValidationFailure,
)
from socialhub.telemetry import setup_tracing, instrument_app
from socialhub.clients.redis_client import close_redis, init_redis
from socialhub.realtime import socketio as realtime_socketio
from socialhub.realtime.broadcaster import Broadcaster
from socialhub.realtime.relay import RedisRelay
from socialhub.relationships import RelationshipStore
from socialhub.routers import groups, posts, users
from socialhub.store.sql import SqlDocumentStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of the store, broadcaster and relay."""
    logger.info("Starting Social Hub API (env=%s)", settings.environment)

    await init_db()
    relationships = RelationshipStore(SqlDocumentStore())
    broadcaster = Broadcaster()

    relay = None
    if settings.redis_enabled:
        redis = await init_redis()
        relay = RedisRelay(
            redis,
            settings.redis_channel,
            retry_delay=settings.relay_retry_delay,
            max_retry_delay=settings.relay_max_retry_delay,
        )
        broadcaster.attach_relay(relay)
        relay.start(broadcaster)

    app.state.relationships = relationships
    app.state.broadcaster = broadcaster
    realtime_socketio.bind(relationships, broadcaster)

    logger.info("Store and broadcaster ready. API ready.")
    yield

    logger.info("Shutting down...")
    realtime_socketio.unbind()
    if relay is not None:
        await relay.stop()
        await close_redis()
    await broadcaster.close()
    await close_db()


app = FastAPI(
    title="Social Hub API",
    description=(
        "Users, groups, posts and messages with idempotent many-to-many "
        "relations and realtime fan-out over Socket.IO."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(groups.router, prefix="/groups", tags=["Groups"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)

# ── Error mapping ─────────────────────────────────────────────────────────
_ERROR_STATUS = (
    (NotFound, 404),
    (UniqueConstraintViolation, 409),
    (ValidationFailure, 422),
    (StorageUnavailable, 503),
)


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError):
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    headers = {"Retry-After": "1"} if status_code == 503 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.detail, "error": exc.code},
        headers=headers,
    )


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}


# ── Socket.IO in front of the REST app ─────────────────────────────────────
asgi_app = realtime_socketio.create_asgi_app(app)
