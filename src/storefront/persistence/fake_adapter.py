"""Configurable in-process document store for development and testing.

Stands in for the hosted document backend without any network calls. It can
be switched to fail globally or for chosen collections at runtime, which is
how the fallback and compensation paths are exercised:

- Manual API testing with a store that goes down mid-session
- Automated tests with predictable outcomes
- Development without backend credentials
"""

import copy
from collections import defaultdict

from storefront.exceptions import ConflictError, PersistenceError
from storefront.persistence.port import DocumentStore
from storefront.persistence.query import matches, sort_records


class FakeDocumentStore(DocumentStore):
    """Configurable fake remote store."""

    def __init__(self) -> None:
        self.collections: dict[str, list[dict]] = defaultdict(list)
        self.should_succeed: bool = True
        self.failing_collections: set[str] = set()
        self.failure_reason: str = "Remote store unavailable"
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failing_collections=(),
        failure_reason: str = "Remote store unavailable",
    ) -> None:
        """Configure store behavior at runtime."""
        self.should_succeed = should_succeed
        self.failing_collections = set(failing_collections)
        self.failure_reason = failure_reason

    def seed(self, collection: str, records: list[dict]) -> None:
        """Place records directly, bypassing failure configuration."""
        self.collections[collection].extend(copy.deepcopy(records))

    def _record_call(self, method: str, collection: str, **details) -> None:
        self.calls.append({"method": method, "collection": collection, **details})
        if not self.should_succeed or collection in self.failing_collections:
            raise PersistenceError(f"{self.failure_reason} ({method} {collection})")

    def _ensure_new_ids(self, collection: str, records: list[dict]) -> None:
        existing = {row.get("id") for row in self.collections[collection]}
        for record in records:
            if record.get("id") in existing:
                raise ConflictError(collection, record.get("id"))
            existing.add(record.get("id"))

    async def insert_one(self, collection: str, record: dict) -> None:
        self._record_call("insert_one", collection, record_id=record.get("id"))
        self._ensure_new_ids(collection, [record])
        self.collections[collection].append(copy.deepcopy(record))

    async def insert_many(self, collection: str, records: list[dict]) -> None:
        self._record_call("insert_many", collection, count=len(records))
        self._ensure_new_ids(collection, records)
        self.collections[collection].extend(copy.deepcopy(records))

    async def update(self, collection: str, filter: dict, patch: dict) -> int:
        self._record_call("update", collection, filter=dict(filter))
        matched = 0
        for row in self.collections[collection]:
            if matches(row, filter):
                row.update(copy.deepcopy(patch))
                matched += 1
        return matched

    async def find(self, collection, filter, sort=None, limit=None):
        self._record_call("find", collection, filter=dict(filter))
        rows = [copy.deepcopy(row) for row in self.collections[collection] if matches(row, filter)]
        rows = sort_records(rows, sort)
        return rows[:limit] if limit else rows
