"""Transactional record store used by the dispatch engine and the CRUD routers.

Records are plain dicts keyed by an integer ``id`` allocated by the store.
Every backend offers the same contract:

- ``get`` / ``update`` / ``create`` on single records,
- ``transaction(fn)``, which awaits ``fn(tx)`` with a handle exposing the
  same three operations and commits every write made through ``tx`` only if
  ``fn`` returns. Any exception leaves the store untouched.

Filters are equality matches on top-level fields; a value of the form
``{"$in": [...]}`` matches any of the listed values. Sort directions are
:data:`ASC` and :data:`DESC`.

``update`` accepts ``expect``: equality guards checked atomically with the
write. A guard mismatch raises :class:`StoreConflict`, as does a concurrent
write detected by the backend.
"""

import enum
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")

Record = dict[str, Any]
SortSpec = Sequence[tuple[str, int]]

ASC = 1
DESC = -1


class Entity(str, enum.Enum):
    VEHICLES = "vehicles"
    DRIVERS = "drivers"
    TRIPS = "trips"
    USERS = "users"


UNIQUE_FIELDS: dict[Entity, tuple[str, ...]] = {
    Entity.VEHICLES: ("license_plate",),
    Entity.USERS: ("email",),
}


class StoreError(Exception):
    """Base class for store failures."""


class NotFound(StoreError):
    def __init__(self, entity: Entity, record_id: Any):
        self.entity = Entity(entity)
        self.record_id = record_id
        super().__init__(f"{self.entity.value[:-1].capitalize()} {record_id} not found")


class DuplicateRecord(StoreError):
    def __init__(self, entity: Entity, field: str, value: Any):
        self.entity = Entity(entity)
        self.field = field
        self.value = value
        super().__init__(f"{field} {value!r} already exists")


class StoreTransactionFailed(StoreError):
    """Infrastructure failure; nothing from the failed transaction was committed."""


class StoreConflict(StoreTransactionFailed):
    """A guarded or concurrent write on one record lost."""

    def __init__(self, entity: Entity, record_id: Any, message: Optional[str] = None):
        self.entity = Entity(entity)
        self.record_id = record_id
        super().__init__(message or f"Concurrent update on {self.entity.value} {record_id}")


class RecordAccess(ABC):
    @abstractmethod
    async def get(self, entity: Entity, record_id: Any) -> Record:
        """Return the record or raise NotFound."""

    @abstractmethod
    async def update(
        self,
        entity: Entity,
        record_id: Any,
        fields: Mapping[str, Any],
        *,
        expect: Optional[Mapping[str, Any]] = None,
    ) -> Record:
        """Apply ``fields`` and return the updated record."""

    @abstractmethod
    async def create(self, entity: Entity, fields: Mapping[str, Any]) -> Record:
        """Insert a record with a freshly allocated id and return it."""


class Store(RecordAccess):
    @abstractmethod
    async def transaction(self, fn: Callable[[RecordAccess], Awaitable[T]]) -> T:
        ...

    @abstractmethod
    async def find(
        self,
        entity: Entity,
        filter: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        ...

    async def find_one(self, entity: Entity, filter: Mapping[str, Any]) -> Optional[Record]:
        found = await self.find(entity, filter, limit=1)
        return found[0] if found else None

    @abstractmethod
    async def count(self, entity: Entity, filter: Optional[Mapping[str, Any]] = None) -> int:
        ...

    @abstractmethod
    async def total(
        self, entity: Entity, field: str, filter: Optional[Mapping[str, Any]] = None
    ) -> float:
        """Sum of ``field`` over matching records (0 when none match)."""

    async def ensure_indexes(self) -> None:
        return None

    async def close(self) -> None:
        return None
