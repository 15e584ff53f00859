import asyncio
import copy
from typing import Any, Mapping, Optional

from fleetops.db.store import (
    DESC,
    UNIQUE_FIELDS,
    DuplicateRecord,
    Entity,
    NotFound,
    Record,
    RecordAccess,
    SortSpec,
    Store,
    StoreConflict,
)


def _match_value(actual: Any, wanted: Any) -> bool:
    if isinstance(wanted, Mapping) and "$in" in wanted:
        return actual in wanted["$in"]
    return actual == wanted


def _matches(record: Mapping[str, Any], filter: Optional[Mapping[str, Any]]) -> bool:
    return all(_match_value(record.get(k), v) for k, v in (filter or {}).items())


class _State(RecordAccess):
    """Tables plus id sequences; a transaction works on a deep copy of one."""

    def __init__(self, tables: dict[str, dict[int, Record]], seq: dict[str, int]):
        self.tables = tables
        self.seq = seq

    def clone(self) -> "_State":
        return _State(copy.deepcopy(self.tables), dict(self.seq))

    def _table(self, entity: Entity) -> dict[int, Record]:
        return self.tables.setdefault(Entity(entity).value, {})

    def _check_unique(self, entity: Entity, record: Mapping[str, Any], skip_id=None) -> None:
        for field in UNIQUE_FIELDS.get(Entity(entity), ()):
            if field not in record:
                continue
            for other in self._table(entity).values():
                if other["id"] != skip_id and other.get(field) == record[field]:
                    raise DuplicateRecord(entity, field, record[field])

    async def get(self, entity: Entity, record_id: Any) -> Record:
        record = self._table(entity).get(record_id)
        if record is None:
            raise NotFound(entity, record_id)
        return copy.deepcopy(record)

    async def update(
        self,
        entity: Entity,
        record_id: Any,
        fields: Mapping[str, Any],
        *,
        expect: Optional[Mapping[str, Any]] = None,
    ) -> Record:
        record = self._table(entity).get(record_id)
        if record is None:
            raise NotFound(entity, record_id)
        if not _matches(record, expect):
            raise StoreConflict(entity, record_id)

        changes = {k: copy.deepcopy(v) for k, v in fields.items() if k != "id"}
        self._check_unique(entity, changes, skip_id=record_id)
        record.update(changes)
        return copy.deepcopy(record)

    async def create(self, entity: Entity, fields: Mapping[str, Any]) -> Record:
        key = Entity(entity).value
        record = copy.deepcopy(dict(fields))
        self._check_unique(entity, record)

        self.seq[key] = self.seq.get(key, 0) + 1
        record["id"] = self.seq[key]
        self._table(entity)[record["id"]] = record
        return copy.deepcopy(record)


class MemoryStore(Store):
    """Process-local store.

    Transactions are serialized by one ``asyncio.Lock`` and run against a
    staged copy of the data that replaces the live data only when ``fn``
    returns, which gives serializable isolation and all-or-nothing commits.
    """

    def __init__(self):
        self._state = _State({e.value: {} for e in Entity}, {})
        self._lock = asyncio.Lock()

    async def transaction(self, fn):
        async with self._lock:
            staged = self._state.clone()
            result = await fn(staged)
            self._state = staged
            return result

    async def get(self, entity, record_id):
        async with self._lock:
            return await self._state.get(entity, record_id)

    async def update(self, entity, record_id, fields, *, expect=None):
        async with self._lock:
            return await self._state.update(entity, record_id, fields, expect=expect)

    async def create(self, entity, fields):
        async with self._lock:
            return await self._state.create(entity, fields)

    async def find(
        self,
        entity: Entity,
        filter: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        async with self._lock:
            rows = [r for r in self._state._table(entity).values() if _matches(r, filter)]
        rows.sort(key=lambda r: r["id"])
        for field, direction in reversed(list(sort or ())):
            rows.sort(key=lambda r: r.get(field), reverse=direction == DESC)
        if limit:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def count(self, entity, filter=None):
        return len(await self.find(entity, filter))

    async def total(self, entity, field, filter=None):
        return float(sum(r.get(field) or 0 for r in await self.find(entity, filter)))
