"""
Document store interface.

The relationship store talks to persistence only through these four calls.
Implementations guarantee per-document atomic `save` and nothing more: there
is no multi-document transaction, so callers that touch two documents must
serialize and compensate on their own.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import ValidationError

from socialhub.entities import ENTITY_TYPES, Entity, EntityKind
from socialhub.errors import ValidationFailure


class DocumentStore(ABC):
    @abstractmethod
    async def find(
        self,
        kind: EntityKind,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Entity]:
        """
        Return every document of `kind` whose fields equal `filters`.

        Args:
            kind: Collection to search
            filters: Field name to required value (equality only)
            order_by: Field to sort on; insertion order when omitted
            descending: Reverse the sort
            limit: Maximum number of documents returned
        """

    @abstractmethod
    async def find_by_id(self, kind: EntityKind, entity_id: str) -> Optional[Entity]:
        """Return a detached copy of the document, or None."""

    @abstractmethod
    async def create(self, kind: EntityKind, fields: dict[str, Any]) -> Entity:
        """
        Validate `fields` against the schema for `kind` and insert the document.

        Raises:
            ValidationFailure: fields do not match the schema
            UniqueConstraintViolation: a unique field collides
            StorageUnavailable: the backend failed
        """

    @abstractmethod
    async def save(self, entity: Entity) -> bool:
        """
        Replace the stored document with `entity`.

        Returns:
            True on success, False if the document does not exist
        """


def build_entity(kind: EntityKind, fields: dict[str, Any]) -> Entity:
    """Schema validation shared by every backend."""
    try:
        return ENTITY_TYPES[kind].model_validate(fields)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or kind.value}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValidationFailure(f"Invalid {kind.value}: {problems}") from exc
