"""Per-customer storefront sessions.

A ``StorefrontSession`` is built when a customer is first seen and torn down
on logout. It owns the customer's cart, order service and current engagement
gate; nothing is shared between customers except the remote store.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import structlog
from protean.exceptions import ValidationError

from storefront.cart.store import CartStore
from storefront.config import StorefrontSettings
from storefront.domain import storefront
from storefront.engagement.gate import EngagementGate
from storefront.order.order import Order, OrderStatus
from storefront.order.service import OrderService
from storefront.persistence.adapter import AuthAwareAdapter
from storefront.persistence.local_cache import LocalCache
from storefront.persistence.port import DocumentStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    cart_cleared: bool


class StorefrontSession:
    def __init__(
        self,
        customer_id: str,
        customer_name: str | None = None,
        settings: StorefrontSettings | None = None,
        remote: DocumentStore | None = None,
        cache: LocalCache | None = None,
        is_authenticated: Callable[[], bool] | None = None,
        notify: Callable | None = None,
    ) -> None:
        self.customer_id = customer_id
        self.customer_name = customer_name
        self.settings = settings or StorefrontSettings.from_env()
        self.cache = cache if cache is not None else LocalCache()

        self.adapter = AuthAwareAdapter(
            self.cache,
            remote=remote,
            is_authenticated=is_authenticated,
            mirror_writes=self.settings.mirror_remote_writes,
        )
        self.cart = CartStore(self.cache, self.settings, customer_id=customer_id, notify=notify)
        self.orders = OrderService(self.adapter, self.settings, notify=notify)
        self.gate: EngagementGate | None = None

    def start_engagement(self, listener: Callable | None = None) -> EngagementGate:
        """Replace any current gate with a fresh one that waives this cart's fee."""
        if not self.settings.engagement_waiver_enabled:
            raise ValidationError({"engagement": ["The delivery fee cannot be waived by engagement"]})

        if self.gate is not None:
            self.gate.close()
        self.gate = EngagementGate(
            on_complete=self._waive_from_gate,
            listener=listener,
            duration=self.settings.engagement_duration,
            tick_interval=self.settings.engagement_tick_interval,
        )
        return self.gate

    def _waive_from_gate(self) -> None:
        # The ticker task may run after the request that started it.
        with storefront.domain_context():
            self.cart.waive_delivery_fee()

    async def checkout(self, delivery_address, payment_method, card_number=None) -> CheckoutResult:
        """Turn the current cart into an order.

        The cart is cleared only after the order exists and its payment was
        not rejected; any error leaves the cart as it was.
        """
        snapshot = self.cart.snapshot()
        order = await self.orders.create_order(
            customer_id=self.customer_id,
            customer_name=self.customer_name,
            items=snapshot.items,
            summary=snapshot.summary,
            delivery_address=delivery_address,
            payment_method=payment_method,
            card_number=card_number,
        )

        if order.current_status is OrderStatus.PAYMENT_FAILED:
            logger.info("Payment rejected, keeping cart", order_id=str(order.id), customer_id=self.customer_id)
            return CheckoutResult(order=order, cart_cleared=False)

        self.cart.clear_cart()
        if self.gate is not None:
            self.gate.close()
            self.gate = None
        return CheckoutResult(order=order, cart_cleared=True)

    def teardown(self) -> None:
        if self.gate is not None:
            self.gate.close()
            self.gate = None
        self.orders.close()
        logger.info("Storefront session closed", customer_id=self.customer_id)


class SessionRegistry:
    """One session per customer id, with a local cache that outlives sessions."""

    def __init__(
        self,
        settings: StorefrontSettings | None = None,
        remote: DocumentStore | None = None,
        notify: Callable | None = None,
    ) -> None:
        self.settings = settings or StorefrontSettings.from_env()
        self.remote = remote
        self._notify = notify
        self._sessions: dict[str, StorefrontSession] = {}
        self._caches: dict[str, LocalCache] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _cache_for(self, customer_id: str) -> LocalCache:
        if customer_id not in self._caches:
            directory = None
            if self.settings.local_cache_dir:
                safe_id = re.sub(r"[^A-Za-z0-9_.-]", "_", customer_id)
                directory = Path(self.settings.local_cache_dir) / safe_id
            self._caches[customer_id] = LocalCache(directory)
        return self._caches[customer_id]

    def get(self, customer_id: str) -> StorefrontSession | None:
        return self._sessions.get(customer_id)

    def get_or_create(self, customer_id: str, customer_name: str | None = None) -> StorefrontSession:
        session = self._sessions.get(customer_id)
        if session is None:
            session = StorefrontSession(
                customer_id,
                customer_name=customer_name,
                settings=self.settings,
                remote=self.remote,
                cache=self._cache_for(customer_id),
                notify=self._notify,
            )
            self._sessions[customer_id] = session
            logger.info("Storefront session started", customer_id=customer_id)
        elif customer_name and session.customer_name != customer_name:
            session.customer_name = customer_name
        return session

    def end(self, customer_id: str) -> bool:
        session = self._sessions.pop(customer_id, None)
        if session is None:
            return False
        session.teardown()
        return True

    def close_all(self) -> None:
        for customer_id in list(self._sessions):
            self.end(customer_id)
