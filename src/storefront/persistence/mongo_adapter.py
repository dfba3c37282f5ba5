"""MongoDB document store adapter (production).

pymongo is synchronous, so every call is pushed to a worker thread to keep the
event loop responsive. Records are addressed by their own ``id`` field; the
Mongo ``_id`` never leaves this module.
"""

import asyncio

import structlog
from pymongo import MongoClient
from pymongo.errors import BulkWriteError, DuplicateKeyError

from storefront.exceptions import ConflictError
from storefront.persistence.port import DocumentStore

logger = structlog.get_logger(__name__)

COLLECTIONS = ("orders", "order_items", "payment_transactions")


class MongoDocumentStore(DocumentStore):
    def __init__(self, uri: str | None = None, database: str | None = None, client=None) -> None:
        if client is None:
            if not uri or not database:
                raise ValueError("MONGO_URI and MONGO_DB_NAME must be set to use the Mongo store.")
            client = MongoClient(uri)
        self._client = client
        self._db = client[database]

    def ensure_indexes(self, collections=COLLECTIONS) -> None:
        for name in collections:
            self._db[name].create_index("id", unique=True)
        logger.info("Mongo indexes ensured", collections=list(collections))

    async def insert_one(self, collection: str, record: dict) -> None:
        try:
            await asyncio.to_thread(self._db[collection].insert_one, dict(record))
        except DuplicateKeyError as exc:
            raise ConflictError(collection, record.get("id")) from exc

    async def insert_many(self, collection: str, records: list[dict]) -> None:
        if not records:
            return
        try:
            await asyncio.to_thread(self._db[collection].insert_many, [dict(r) for r in records])
        except BulkWriteError as exc:
            duplicate = next(
                (err for err in exc.details.get("writeErrors", []) if err.get("code") == 11000),
                None,
            )
            if duplicate is None:
                raise
            raise ConflictError(collection, duplicate.get("op", {}).get("id")) from exc

    async def update(self, collection: str, filter: dict, patch: dict) -> int:
        result = await asyncio.to_thread(self._db[collection].update_many, dict(filter), {"$set": dict(patch)})
        return result.matched_count

    async def find(self, collection, filter, sort=None, limit=None):
        def _query():
            cursor = self._db[collection].find(dict(filter), {"_id": 0}, sort=sort, limit=limit or 0)
            return list(cursor)

        return await asyncio.to_thread(_query)
