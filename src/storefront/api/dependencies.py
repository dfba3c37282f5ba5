"""Session lookup for API requests.

The customer is identified by the ``X-Customer-Id`` header; authentication
happens upstream. Provides get_registry() / set_registry() so tests can swap
in a registry with their own settings and remote store.
"""

from fastapi import Header
from protean.exceptions import ValidationError

from storefront.persistence import get_remote_store
from storefront.session import SessionRegistry, StorefrontSession
from storefront.utils.logging import add_context

_current_registry: SessionRegistry | None = None


def get_registry() -> SessionRegistry:
    """Return the current session registry, creating it on first use."""
    global _current_registry
    if _current_registry is None:
        _current_registry = SessionRegistry(remote=get_remote_store())
    return _current_registry


def set_registry(registry: SessionRegistry) -> None:
    global _current_registry
    _current_registry = registry


def reset_registry() -> None:
    global _current_registry
    if _current_registry is not None:
        _current_registry.close_all()
    _current_registry = None


def customer_id_header(x_customer_id: str | None = Header(default=None)) -> str:
    if not x_customer_id or not x_customer_id.strip():
        raise ValidationError({"customer_id": ["X-Customer-Id header is required"]})
    return x_customer_id.strip()


def current_session(
    x_customer_id: str | None = Header(default=None),
    x_customer_name: str | None = Header(default=None),
) -> StorefrontSession:
    customer_id = customer_id_header(x_customer_id)
    add_context(customer_id=customer_id)
    return get_registry().get_or_create(customer_id, customer_name=x_customer_name)
