"""
Document store backed by the service database (async SQLAlchemy).

Each entity kind maps to one table; relation lists are JSON columns. Every
call opens its own short-lived session, so `save` is one single-row UPDATE
committed on its own.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from socialhub.database import AsyncSessionLocal
from socialhub.entities import ENTITY_TYPES, Entity, EntityKind, entity_kind
from socialhub.errors import StorageUnavailable, UniqueConstraintViolation
from socialhub.models import GroupRow, MessageRow, PostRow, UserRow
from socialhub.store.base import DocumentStore, build_entity

logger = logging.getLogger(__name__)

_ROWS = {
    EntityKind.USER: UserRow,
    EntityKind.GROUP: GroupRow,
    EntityKind.POST: PostRow,
    EntityKind.MESSAGE: MessageRow,
}


def _to_entity(kind: EntityKind, row: Any) -> Entity:
    return ENTITY_TYPES[kind].model_validate(row, from_attributes=True)


class SqlDocumentStore(DocumentStore):
    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as exc:
            raise UniqueConstraintViolation(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            logger.warning("Database call failed: %s", exc)
            raise StorageUnavailable(f"Database unavailable ({exc.__class__.__name__})") from exc

    async def find(
        self,
        kind: EntityKind,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Entity]:
        row_cls = _ROWS[kind]
        stmt = select(row_cls)
        for field, value in (filters or {}).items():
            stmt = stmt.where(getattr(row_cls, field) == value)
        if order_by:
            column = getattr(row_cls, order_by)
            # id breaks timestamp ties so equal keys come back in a stable order
            if descending:
                stmt = stmt.order_by(column.desc(), row_cls.id.desc())
            else:
                stmt = stmt.order_by(column, row_cls.id)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [_to_entity(kind, row) for row in rows]

    async def find_by_id(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        async with self._session() as session:
            row = await session.get(_ROWS[kind], entity_id)
            return _to_entity(kind, row) if row else None

    async def create(self, kind: EntityKind, fields: dict[str, Any]) -> Entity:
        entity = build_entity(kind, fields)
        async with self._session() as session:
            session.add(_ROWS[kind](**entity.model_dump(exclude={"kind"})))
            await session.commit()
        return entity

    async def save(self, entity: Entity) -> bool:
        kind = entity_kind(entity)
        async with self._session() as session:
            row = await session.get(_ROWS[kind], entity.id)
            if row is None:
                return False
            for field, value in entity.model_dump(exclude={"kind", "id"}).items():
                setattr(row, field, value)
            await session.commit()
        return True
