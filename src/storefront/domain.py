"""Storefront bounded context: cart, delivery-fee waiver and orders.

Holds the shopping cart (kept in the customer's local cache), the engagement
gate that can waive the delivery fee, and the order lifecycle persisted
through the remote/local persistence adapter.
"""

import structlog
from protean.domain import Domain

from storefront.utils.logging import configure_logging

# Configure logging for the application
configure_logging()

# Domain Composition Root
storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
