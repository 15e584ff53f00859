import logging
from typing import Any, Mapping, Optional

import certifi
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from fleetops.db.store import (
    ASC,
    UNIQUE_FIELDS,
    DuplicateRecord,
    Entity,
    NotFound,
    Record,
    RecordAccess,
    SortSpec,
    Store,
    StoreConflict,
    StoreTransactionFailed,
)

logger = logging.getLogger(__name__)

WRITE_CONFLICT = 112


def create_client(url: str) -> AsyncIOMotorClient:
    kwargs: dict[str, Any] = {"tz_aware": True}
    if url.startswith("mongodb+srv://") or "tls=true" in url.lower():
        kwargs["tlsCAFile"] = certifi.where()
    return AsyncIOMotorClient(url, **kwargs)


def _is_conflict(exc: PyMongoError) -> bool:
    if isinstance(exc, OperationFailure) and exc.code == WRITE_CONFLICT:
        return True
    return exc.has_error_label("TransientTransactionError")


def _translate(exc: PyMongoError, entity: Entity, record_id: Any = None) -> Exception:
    if isinstance(exc, DuplicateKeyError):
        details = (exc.details or {}).get("keyValue") or {}
        field, value = next(iter(details.items()), ("key", None))
        return DuplicateRecord(entity, field, value)
    if _is_conflict(exc):
        return StoreConflict(entity, record_id)
    return StoreTransactionFailed(str(exc))


class _MongoAccess(RecordAccess):
    def __init__(self, db, session=None):
        self._db = db
        self._session = session

    async def _next_id(self, entity: Entity) -> int:
        # allocated outside any session so concurrent transactions never collide on it
        counter = await self._db.counters.find_one_and_update(
            {"_id": Entity(entity).value},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    async def get(self, entity, record_id):
        try:
            doc = await self._db[Entity(entity).value].find_one(
                {"id": record_id}, {"_id": 0}, session=self._session
            )
        except PyMongoError as exc:
            raise _translate(exc, entity, record_id) from exc
        if doc is None:
            raise NotFound(entity, record_id)
        return doc

    async def update(self, entity, record_id, fields, *, expect=None):
        coll = self._db[Entity(entity).value]
        changes = {k: v for k, v in fields.items() if k != "id"}
        try:
            doc = await coll.find_one_and_update(
                {**(expect or {}), "id": record_id},
                {"$set": changes},
                projection={"_id": 0},
                return_document=ReturnDocument.AFTER,
                session=self._session,
            )
            if doc is None and expect:
                exists = await coll.count_documents({"id": record_id}, limit=1, session=self._session)
                if exists:
                    raise StoreConflict(entity, record_id)
        except PyMongoError as exc:
            raise _translate(exc, entity, record_id) from exc
        if doc is None:
            raise NotFound(entity, record_id)
        return doc

    async def create(self, entity, fields):
        doc = dict(fields)
        try:
            doc["id"] = await self._next_id(entity)
            await self._db[Entity(entity).value].insert_one(doc, session=self._session)
        except PyMongoError as exc:
            raise _translate(exc, entity, doc.get("id")) from exc
        doc.pop("_id", None)
        return doc


class MongoStore(_MongoAccess, Store):
    """Motor-backed store; ``transaction`` needs a replica set or sharded cluster."""

    def __init__(self, client: AsyncIOMotorClient, db_name: str):
        self._client = client
        super().__init__(client[db_name])

    async def transaction(self, fn):
        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction():
                    return await fn(_MongoAccess(self._db, session))
        except PyMongoError as exc:
            # commit-time failure; record-level errors were translated already
            logger.warning("Mongo transaction aborted: %s", exc)
            raise StoreTransactionFailed(str(exc)) from exc

    async def find(
        self,
        entity: Entity,
        filter: Optional[Mapping[str, Any]] = None,
        *,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[Record]:
        cursor = self._db[Entity(entity).value].find(dict(filter or {}), {"_id": 0})
        cursor = cursor.sort(list(sort) if sort else [("id", ASC)])
        if limit:
            cursor = cursor.limit(limit)
        try:
            return await cursor.to_list(length=limit or None)
        except PyMongoError as exc:
            raise _translate(exc, entity) from exc

    async def count(self, entity, filter=None):
        try:
            return await self._db[Entity(entity).value].count_documents(dict(filter or {}))
        except PyMongoError as exc:
            raise _translate(exc, entity) from exc

    async def total(self, entity, field, filter=None):
        pipeline = [
            {"$match": dict(filter or {})},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
        ]
        try:
            rows = await self._db[Entity(entity).value].aggregate(pipeline).to_list(length=1)
        except PyMongoError as exc:
            raise _translate(exc, entity) from exc
        return float(rows[0]["total"]) if rows else 0.0

    async def ensure_indexes(self) -> None:
        for entity in Entity:
            coll = self._db[entity.value]
            await coll.create_index([("id", ASCENDING)], unique=True)
            for field in UNIQUE_FIELDS.get(entity, ()):
                await coll.create_index([(field, ASCENDING)], unique=True)
        await self._db[Entity.VEHICLES.value].create_index([("status", ASCENDING)])
        await self._db[Entity.TRIPS.value].create_index([("status", ASCENDING)])
        await self._db[Entity.TRIPS.value].create_index([("created_at", DESCENDING)])

    async def close(self) -> None:
        self._client.close()
