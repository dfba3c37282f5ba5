"""Persistence adapter: one interface over the remote store and the local cache.

Two strategies implement ``PersistenceAdapter``:

- ``RemoteBackedAdapter``: remote first. A write the remote rejects (or that
  raises) is written to the local cache instead, tagged for later
  reconciliation, and reported as ``WriteResult(LOCAL, error)``. Listing reads
  the remote and merges in local rows whose id the remote does not know.
- ``LocalOnlyAdapter``: the local cache only, for sessions that are not
  authenticated against the remote store.

``AuthAwareAdapter`` picks one of the two on every call from the remote
session's authentication check.

Duplicate ids (``ConflictError``) are never masked by the fallback.
"""

import copy
from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

from storefront.exceptions import ConflictError
from storefront.persistence.local_cache import LocalCache
from storefront.persistence.port import DocumentStore, StoredIn, WriteResult
from storefront.persistence.query import matches, merge_by_id, sort_records

logger = structlog.get_logger(__name__)

LOCAL_ONLY_TAG = "_local_only"


def _untagged(row: dict) -> dict:
    return {k: v for k, v in row.items() if k != LOCAL_ONLY_TAG}


def _newer(local: dict | None, remote: dict) -> dict:
    """A row changed locally during an outage replaces its older remote version."""
    if local is not None and (local.get("updated_at") or "") > (remote.get("updated_at") or ""):
        return local
    return remote


class PersistenceAdapter(ABC):
    """Uniform persistence interface used by the order service."""

    @abstractmethod
    async def insert(self, collection: str, record: dict) -> WriteResult: ...

    @abstractmethod
    async def insert_many(self, collection: str, records: list[dict]) -> WriteResult: ...

    @abstractmethod
    async def update(self, collection: str, filter: dict, patch: dict) -> WriteResult: ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: dict,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[dict]: ...

    async def reconcile(self, collection: str) -> int:
        """Push locally-held changes for ``collection`` to the remote store."""
        return 0

    def pending_ids(self, collection: str) -> set[str]:
        """Ids of records in ``collection`` with changes held only locally."""
        return set()


# ---------------------------------------------------------------------------
# Local-only strategy
# ---------------------------------------------------------------------------
class LocalOnlyAdapter(PersistenceAdapter):
    def __init__(self, cache: LocalCache) -> None:
        self._cache = cache

    @staticmethod
    def rows_key(collection: str) -> str:
        return f"collection:{collection}"

    @staticmethod
    def patches_key(collection: str) -> str:
        return f"collection:{collection}:patches"

    def rows(self, collection: str) -> list[dict]:
        return self._cache.get(self.rows_key(collection), [])

    def save_rows(self, collection: str, rows: list[dict]) -> None:
        self._cache.set(self.rows_key(collection), rows)

    def patches(self, collection: str) -> list[dict]:
        return self._cache.get(self.patches_key(collection), [])

    def save_patches(self, collection: str, patches: list[dict]) -> None:
        if patches:
            self._cache.set(self.patches_key(collection), patches)
        else:
            self._cache.remove(self.patches_key(collection))

    async def insert(self, collection, record, error=None):
        return await self.insert_many(collection, [record], error=error)

    async def insert_many(self, collection, records, error=None):
        rows = self.rows(collection)
        existing = {row.get("id") for row in rows}
        for record in records:
            if record.get("id") in existing:
                raise ConflictError(collection, record.get("id"))
            existing.add(record.get("id"))
            rows.append({**copy.deepcopy(record), LOCAL_ONLY_TAG: True})

        self.save_rows(collection, rows)
        return WriteResult(stored=StoredIn.LOCAL, error=error)

    def apply_patch(self, collection: str, filter: dict, patch: dict, tag: bool = True) -> int:
        rows = self.rows(collection)
        matched = 0
        for row in rows:
            if matches(row, filter):
                row.update(copy.deepcopy(patch))
                if tag:
                    row[LOCAL_ONLY_TAG] = True
                matched += 1

        if matched:
            self.save_rows(collection, rows)
        return matched

    async def update(self, collection, filter, patch, error=None):
        matched = self.apply_patch(collection, filter, patch)
        if not matched:
            # The record may only exist remotely; keep the patch for reconciliation.
            patches = self.patches(collection)
            patches.append({"filter": dict(filter), "patch": copy.deepcopy(patch)})
            self.save_patches(collection, patches)

        return WriteResult(stored=StoredIn.LOCAL, error=error, matched=matched)

    async def find(self, collection, filter, sort=None, limit=None):
        rows = [_untagged(row) for row in self.overlay(collection, self.rows(collection)) if matches(row, filter)]
        rows = sort_records(rows, sort)
        return rows[:limit] if limit else rows

    def overlay(self, collection: str, rows: list[dict]) -> list[dict]:
        """Apply recorded patches, oldest first, to copies of ``rows``."""
        patches = self.patches(collection)
        if not patches:
            return rows
        patched = copy.deepcopy(rows)
        for entry in patches:
            for row in patched:
                if matches(row, entry["filter"]):
                    row.update(copy.deepcopy(entry["patch"]))
        return patched

    def pending_ids(self, collection):
        ids = {str(row.get("id")) for row in self.rows(collection) if row.get(LOCAL_ONLY_TAG)}
        ids.update(str(entry["filter"]["id"]) for entry in self.patches(collection) if "id" in entry["filter"])
        return ids

    def mirror(self, collection: str, records: list[dict]) -> None:
        """Copy remotely-stored records into the cache without the local-only tag."""
        incoming = {record.get("id"): copy.deepcopy(record) for record in records}
        rows = [row for row in self.rows(collection) if row.get("id") not in incoming]
        rows.extend(incoming.values())
        self.save_rows(collection, rows)


# ---------------------------------------------------------------------------
# Remote-backed strategy
# ---------------------------------------------------------------------------
class RemoteBackedAdapter(PersistenceAdapter):
    def __init__(self, remote: DocumentStore, local: LocalOnlyAdapter, mirror_writes: bool = False) -> None:
        self._remote = remote
        self._local = local
        self._mirror_writes = mirror_writes

    async def insert(self, collection, record):
        try:
            await self._remote.insert_one(collection, record)
        except ConflictError:
            raise
        except Exception as exc:
            logger.warning(
                "Remote insert failed, writing to local cache",
                collection=collection,
                record_id=record.get("id"),
                error=str(exc),
            )
            return await self._local.insert(collection, record, error=exc)

        if self._mirror_writes:
            self._local.mirror(collection, [record])
        return WriteResult(stored=StoredIn.REMOTE)

    async def insert_many(self, collection, records):
        try:
            await self._remote.insert_many(collection, records)
        except ConflictError:
            raise
        except Exception as exc:
            logger.warning(
                "Remote bulk insert failed, writing to local cache",
                collection=collection,
                count=len(records),
                error=str(exc),
            )
            return await self._local.insert_many(collection, records, error=exc)

        if self._mirror_writes:
            self._local.mirror(collection, records)
        return WriteResult(stored=StoredIn.REMOTE)

    async def update(self, collection, filter, patch):
        try:
            matched = await self._remote.update(collection, filter, patch)
        except Exception as exc:
            logger.warning(
                "Remote update failed, updating local cache only",
                collection=collection,
                filter=filter,
                error=str(exc),
            )
            return await self._local.update(collection, filter, patch, error=exc)

        if matched == 0:
            # Rows written during an outage exist only in the local cache.
            local_matched = self._local.apply_patch(collection, filter, patch)
            if local_matched:
                return WriteResult(stored=StoredIn.LOCAL, matched=local_matched)
        elif self._mirror_writes:
            self._local.apply_patch(collection, filter, patch, tag=False)
        return WriteResult(stored=StoredIn.REMOTE, matched=matched)

    async def find(self, collection, filter, sort=None, limit=None):
        try:
            remote_rows = await self._remote.find(collection, filter, sort=sort)
        except Exception as exc:
            logger.warning(
                "Remote read failed, using local cache only",
                collection=collection,
                error=str(exc),
            )
            remote_rows = []

        held = self._local.rows(collection)
        pending = {row.get("id"): row for row in held if row.get(LOCAL_ONLY_TAG)}
        remote_rows = [_newer(pending.get(row.get("id")), row) for row in remote_rows]
        merged = merge_by_id(remote_rows, held)

        rows = [_untagged(row) for row in self._local.overlay(collection, merged) if matches(row, filter)]
        rows = sort_records(rows, sort)
        return rows[:limit] if limit else rows

    async def reconcile(self, collection):
        rows = self._local.rows(collection)
        pending = [row for row in rows if row.get(LOCAL_ONLY_TAG)]
        synced = 0

        for row in pending:
            record = _untagged(row)
            try:
                existing = await self._remote.find(collection, {"id": record.get("id")}, limit=1)
                if existing:
                    await self._remote.update(collection, {"id": record.get("id")}, record)
                else:
                    await self._remote.insert_one(collection, record)
            except Exception as exc:
                logger.warning(
                    "Reconciliation stopped, remote store rejected a record",
                    collection=collection,
                    record_id=record.get("id"),
                    error=str(exc),
                )
                break
            row.pop(LOCAL_ONLY_TAG, None)
            synced += 1

        self._local.save_rows(collection, rows)

        remaining = []
        for entry in self._local.patches(collection):
            if remaining:
                remaining.append(entry)
                continue
            try:
                await self._remote.update(collection, entry["filter"], entry["patch"])
            except Exception as exc:
                logger.warning(
                    "Reconciliation stopped, remote store rejected a patch",
                    collection=collection,
                    error=str(exc),
                )
                remaining.append(entry)
                continue
            synced += 1
        self._local.save_patches(collection, remaining)

        if synced:
            logger.info("Local records reconciled", collection=collection, synced=synced)
        return synced

    def pending_ids(self, collection):
        return self._local.pending_ids(collection)


# ---------------------------------------------------------------------------
# Per-call strategy selection
# ---------------------------------------------------------------------------
class AuthAwareAdapter(PersistenceAdapter):
    """Routes each call to the remote-backed or local-only strategy.

    ``is_authenticated`` is the session's capability check against the remote
    store; without one, a configured remote store counts as usable.
    """

    def __init__(
        self,
        cache: LocalCache,
        remote: DocumentStore | None = None,
        is_authenticated: Callable[[], bool] | None = None,
        mirror_writes: bool = False,
    ) -> None:
        self._is_authenticated = is_authenticated or (lambda: True)
        self.local = LocalOnlyAdapter(cache)
        self.remote_backed = RemoteBackedAdapter(remote, self.local, mirror_writes) if remote is not None else None

    @property
    def strategy(self) -> PersistenceAdapter:
        if self.remote_backed is not None and self._is_authenticated():
            return self.remote_backed
        return self.local

    async def insert(self, collection, record):
        return await self.strategy.insert(collection, record)

    async def insert_many(self, collection, records):
        return await self.strategy.insert_many(collection, records)

    async def update(self, collection, filter, patch):
        return await self.strategy.update(collection, filter, patch)

    async def find(self, collection, filter, sort=None, limit=None):
        return await self.strategy.find(collection, filter, sort=sort, limit=limit)

    async def reconcile(self, collection):
        return await self.strategy.reconcile(collection)

    def pending_ids(self, collection):
        return self.local.pending_ids(collection)
