"""Remote document store port (abstract interface).

Defines the contract every remote store adapter implements, and the
``WriteResult`` returned by the persistence adapter so callers can see where a
write actually landed. Stores are addressed by collection name and queried
with equality filters only; there are no cross-collection transactions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class StoredIn(Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a write through the persistence adapter."""

    stored: StoredIn
    error: Exception | None = None
    matched: int | None = None

    @property
    def fell_back(self) -> bool:
        """True when the remote store was tried and the write went local."""
        return self.stored is StoredIn.LOCAL and self.error is not None


class DocumentStore(ABC):
    """Abstract remote document store.

    One store instance is shared by every session in the process; whether a
    given session may use it is decided by that session, not by the store.
    """

    @abstractmethod
    async def insert_one(self, collection: str, record: dict) -> None:
        """Insert a single record. Raises ConflictError on a duplicate id."""
        ...

    @abstractmethod
    async def insert_many(self, collection: str, records: list[dict]) -> None:
        """Insert several records. Raises ConflictError on a duplicate id."""
        ...

    @abstractmethod
    async def update(self, collection: str, filter: dict, patch: dict) -> int:
        """Set ``patch`` fields on every record matching ``filter``; return the match count."""
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: dict,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        """Return records matching ``filter``, optionally sorted and limited."""
        ...
