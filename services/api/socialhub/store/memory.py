"""
In-memory document store for development and testing.

Data is lost when the process exits. Documents are copied on the way in and
on the way out, so callers only ever change stored state through `save`.
"""
from typing import Any, Optional

from socialhub.entities import Entity, EntityKind, User, entity_kind
from socialhub.errors import UniqueConstraintViolation
from socialhub.store.base import DocumentStore, build_entity


class MemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._data: dict[EntityKind, dict[str, Entity]] = {kind: {} for kind in EntityKind}

    async def find(
        self,
        kind: EntityKind,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Entity]:
        docs = [
            doc
            for doc in self._data[kind].values()
            if all(getattr(doc, field) == value for field, value in (filters or {}).items())
        ]
        if order_by:
            docs.sort(key=lambda doc: getattr(doc, order_by), reverse=descending)
        elif descending:
            docs.reverse()
        if limit is not None:
            docs = docs[:limit]
        return [doc.model_copy(deep=True) for doc in docs]

    async def find_by_id(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        doc = self._data[kind].get(entity_id)
        return doc.model_copy(deep=True) if doc else None

    async def create(self, kind: EntityKind, fields: dict[str, Any]) -> Entity:
        entity = build_entity(kind, fields)
        collection = self._data[kind]
        if entity.id in collection:
            raise UniqueConstraintViolation(f"{kind.value} {entity.id} already exists")
        if isinstance(entity, User) and any(
            u.email.lower() == entity.email.lower() for u in collection.values()
        ):
            raise UniqueConstraintViolation(f"email {entity.email} already exists")
        collection[entity.id] = entity.model_copy(deep=True)
        return entity

    async def save(self, entity: Entity) -> bool:
        collection = self._data[entity_kind(entity)]
        if entity.id not in collection:
            return False
        collection[entity.id] = entity.model_copy(deep=True)
        return True
