"""Remote document store factory.

Provides get_remote_store() / set_remote_store() to swap implementations:
- FakeDocumentStore for development and testing
- MongoDocumentStore for production (REMOTE_STORE=mongo)
"""

from storefront.config import StorefrontSettings
from storefront.persistence.fake_adapter import FakeDocumentStore
from storefront.persistence.port import DocumentStore

_current_store: DocumentStore | None = None


def get_remote_store(settings: StorefrontSettings | None = None) -> DocumentStore:
    """Return the current remote store. Defaults to FakeDocumentStore."""
    global _current_store
    if _current_store is None:
        settings = settings or StorefrontSettings.from_env()
        if settings.remote_store == "fake":
            _current_store = FakeDocumentStore()
        elif settings.remote_store == "mongo":
            from storefront.persistence.mongo_adapter import MongoDocumentStore

            store = MongoDocumentStore(uri=settings.mongo_uri, database=settings.mongo_db_name)
            store.ensure_indexes()
            _current_store = store
        else:
            raise ValueError(f"Unknown remote store: {settings.remote_store}")
    return _current_store


def set_remote_store(store: DocumentStore) -> None:
    """Override the active remote store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_remote_store() -> None:
    """Reset to default store."""
    global _current_store
    _current_store = None
