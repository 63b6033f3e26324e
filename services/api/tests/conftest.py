import asyncio
import os
import tempfile

# Settings are read at import time, so point them at a throwaway SQLite file
# before anything from socialhub is imported.
_DB_DIR = tempfile.mkdtemp(prefix="socialhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/hub.db"
os.environ["TRACING_ENABLED"] = "false"
os.environ["REDIS_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from socialhub.database import Base, close_db, engine, init_db  # noqa: E402
from socialhub.realtime.broadcaster import Broadcaster  # noqa: E402
from socialhub.relationships import RelationshipStore  # noqa: E402
from socialhub.store.memory import MemoryDocumentStore  # noqa: E402
from socialhub.store.sql import SqlDocumentStore  # noqa: E402


async def _drop_tables() -> None:
    import socialhub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def memory_store():
    return MemoryDocumentStore()


@pytest.fixture
def relationships(memory_store):
    return RelationshipStore(memory_store)


@pytest.fixture
async def sql_store():
    await _drop_tables()
    await init_db()
    yield SqlDocumentStore()
    await close_db()


@pytest.fixture
async def broadcaster():
    bus = Broadcaster(queue_size=100)
    yield bus
    await bus.close()


@pytest.fixture
def client():
    from socialhub.main import app

    asyncio.run(_drop_tables())
    with TestClient(app) as test_client:
        yield test_client


class Recorder:
    """Observer sink that keeps every delivered event."""

    def __init__(self):
        self.events = []

    async def __call__(self, event, payload):
        self.events.append((event, payload))

    @property
    def names(self):
        return [name for name, _ in self.events]


@pytest.fixture
def recorder_factory():
    return Recorder
