"""OrderService: checkout into orders and the order status lifecycle.

Creating an order writes three collections with no cross-collection
transaction: the ``orders`` row, its ``order_items`` rows and one
``payment_transactions`` row. When a later write fails, or lands in a
different store than the order row, the already-written order is moved to a
terminal status before the error is raised:

    items fail   → CANCELLED
    payment fails → PAYMENT_FAILED

Orders that start PENDING (cash on delivery) are completed automatically by
the watchdog unless they leave PENDING first.
"""

from collections.abc import Callable

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.config import StorefrontSettings
from storefront.domain import storefront
from storefront.exceptions import PersistenceError
from storefront.order.order import Order, OrderStatus, PaymentMethod
from storefront.order.payment import evaluate_payment, normalize_card_number
from storefront.order.records import (
    ORDER_ITEMS,
    ORDERS,
    PAYMENT_TRANSACTIONS,
    item_rows,
    order_from_rows,
    order_row,
    payment_row,
    status_patch,
)
from storefront.order.watchdog import OrderWatchdog
from storefront.persistence.adapter import PersistenceAdapter
from storefront.persistence.port import StoredIn
from storefront.persistence.query import DESCENDING

logger = structlog.get_logger(__name__)


class OrderService:
    def __init__(
        self,
        adapter: PersistenceAdapter,
        settings: StorefrontSettings | None = None,
        notify: Callable | None = None,
    ) -> None:
        self._adapter = adapter
        self._settings = settings or StorefrontSettings()
        self._notify = notify
        self._orders: dict[str, Order] = {}
        self._watchdog = OrderWatchdog(self._settings.auto_complete_after, self._auto_complete)
        self.unsynced_order_ids: set[str] = set()

    @property
    def watchdog(self) -> OrderWatchdog:
        return self._watchdog

    def _publish(self, order: Order) -> None:
        events = list(order._events)
        order._events.clear()
        for event in events:
            if self._notify is not None:
                self._notify(event)

    def _track(self, order_id: str, stored: StoredIn) -> None:
        if stored is StoredIn.LOCAL:
            self.unsynced_order_ids.add(order_id)

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    @staticmethod
    def _validate(customer_id, items, delivery_address, payment_method, card_number):
        errors = {}
        if not customer_id:
            errors["customer_id"] = ["Customer is required"]
        if not items:
            errors["items"] = ["Cannot create an order from an empty cart"]
        if not delivery_address or not str(delivery_address).strip():
            errors["delivery_address"] = ["Delivery address is required"]

        method = None
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            errors["payment_method"] = [f"Unsupported payment method: {payment_method}"]
        if method is PaymentMethod.CARD and not normalize_card_number(card_number):
            errors["card_number"] = ["Card number is required for card payments"]

        if errors:
            raise ValidationError(errors)
        return method

    async def create_order(
        self,
        customer_id,
        customer_name,
        items,
        summary,
        delivery_address,
        payment_method,
        card_number=None,
    ) -> Order:
        """Create and persist an order from a cart snapshot.

        Raises ``ValidationError`` before any write, and ``PersistenceError``
        after compensating when the item or payment rows cannot be stored
        alongside the order row.
        """
        method = self._validate(customer_id, items, delivery_address, payment_method, card_number)

        outcome = evaluate_payment(method, card_number, self._settings.test_card_prefix)
        order = Order.place(
            customer_id=customer_id,
            customer_name=customer_name,
            items_data=items,
            summary=summary,
            delivery_address=str(delivery_address).strip(),
            payment_method=method,
            status=outcome.initial_order_status,
        )
        order_id = str(order.id)

        order_result = await self._adapter.insert(ORDERS, order_row(order))
        self._orders[order_id] = order
        self._track(order_id, order_result.stored)
        if order_result.fell_back:
            logger.warning("Order stored in local cache only", order_id=order_id, error=str(order_result.error))

        # Line items
        try:
            items_result = await self._adapter.insert_many(ORDER_ITEMS, item_rows(order))
        except Exception as exc:
            await self._compensate(order, OrderStatus.CANCELLED, step="items", error=exc)
            raise PersistenceError(f"Order items for {order_id} could not be stored") from exc
        if items_result.stored is not order_result.stored:
            await self._compensate(order, OrderStatus.CANCELLED, step="items", error=items_result.error)
            raise PersistenceError(f"Order items for {order_id} were not stored with the order")

        # Payment record
        try:
            payment_result = await self._adapter.insert(PAYMENT_TRANSACTIONS, payment_row(order, outcome))
        except Exception as exc:
            await self._compensate(order, OrderStatus.PAYMENT_FAILED, step="payment", error=exc)
            raise PersistenceError(f"Payment record for {order_id} could not be stored") from exc
        if payment_result.stored is not order_result.stored:
            await self._compensate(order, OrderStatus.PAYMENT_FAILED, step="payment", error=payment_result.error)
            raise PersistenceError(f"Payment record for {order_id} was not stored with the order")

        if order.current_status is OrderStatus.PENDING:
            self._watchdog.start(order_id)

        logger.info(
            "Order created",
            order_id=order_id,
            customer_id=str(customer_id),
            status=order.status,
            payment_method=method.value,
            total=order.summary.total,
            stored=order_result.stored.value,
        )
        self._publish(order)
        return order

    async def _compensate(self, order: Order, target: OrderStatus, step: str, error=None) -> None:
        order_id = str(order.id)
        logger.error(
            "Order creation failed, compensating",
            order_id=order_id,
            step=step,
            target=target.value,
            error=str(error) if error else None,
        )
        if order.is_terminal:
            self._publish(order)
            return

        order.transition_to(target)
        self._watchdog.cancel(order_id)
        try:
            result = await self._adapter.update(ORDERS, {"id": order_id}, status_patch(order))
        except Exception as exc:
            # The original failure is raised by the caller; this one is only recorded.
            logger.error("Compensating status could not be stored", order_id=order_id, error=str(exc))
            self.unsynced_order_ids.add(order_id)
        else:
            self._track(order_id, result.stored)
        self._publish(order)

    # -------------------------------------------------------------------
    # Status updates
    # -------------------------------------------------------------------
    async def update_order_status(self, order_id, new_status) -> Order:
        """Move an order to ``new_status`` and persist it, preferring the remote store."""
        order_id = str(order_id)
        order = self._orders.get(order_id)
        if order is None:
            raise ObjectNotFoundError(f"Order {order_id} does not exist")
        try:
            new_status = OrderStatus(new_status)
        except ValueError:
            raise ValidationError({"status": [f"Unknown order status: {new_status}"]}) from None

        order.transition_to(new_status)
        if order.current_status is not OrderStatus.PENDING:
            self._watchdog.cancel(order_id)

        result = await self._adapter.update(ORDERS, {"id": order_id}, status_patch(order))
        if result.stored is StoredIn.LOCAL:
            logger.warning(
                "Order status stored in local cache only",
                order_id=order_id,
                status=order.status,
                error=str(result.error) if result.error else None,
            )
            self.unsynced_order_ids.add(order_id)
        else:
            logger.info("Order status updated", order_id=order_id, status=order.status)

        self._publish(order)
        return order

    async def _auto_complete(self, order_id: str) -> None:
        order = self._orders.get(order_id)
        if order is None or order.current_status is not OrderStatus.PENDING:
            return
        logger.info("Auto-completing pending order", order_id=order_id)
        # Timers outlive the request that started them.
        with storefront.domain_context():
            await self.update_order_status(order_id, OrderStatus.COMPLETED)

    # -------------------------------------------------------------------
    # Loading and queries
    # -------------------------------------------------------------------
    async def load_orders(self, customer_id) -> list[Order]:
        """Load a customer's orders from both stores, newest first."""
        rows = await self._adapter.find(
            ORDERS,
            {"user_id": str(customer_id)},
            sort=[("created_at", DESCENDING)],
        )
        held_locally = self._adapter.pending_ids(ORDERS)
        loaded = []
        for row in rows:
            order_id = str(row["id"])
            existing = self._orders.get(order_id)
            if existing is not None:
                # In-memory orders carry status changes that may not have reached any store.
                loaded.append(existing)
                continue

            items = await self._adapter.find(ORDER_ITEMS, {"order_id": order_id})
            order = order_from_rows(row, items)
            self._orders[order_id] = order
            if order_id in held_locally:
                self.unsynced_order_ids.add(order_id)
            if order.current_status is OrderStatus.PENDING and order_id not in self._watchdog:
                self._watchdog.start(order_id)
            loaded.append(order)

        logger.debug("Orders loaded", customer_id=str(customer_id), count=len(loaded))
        return loaded

    def get_order(self, order_id) -> Order | None:
        return self._orders.get(str(order_id))

    def get_orders_by_customer(self, customer_id) -> list[Order]:
        return self._sorted(o for o in self._orders.values() if str(o.customer_id) == str(customer_id))

    def get_orders_by_vendor(self, vendor_id) -> list[Order]:
        return self._sorted(o for o in self._orders.values() if o.references_vendor(vendor_id))

    @staticmethod
    def _sorted(orders) -> list[Order]:
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    # -------------------------------------------------------------------
    # Reconciliation and teardown
    # -------------------------------------------------------------------
    async def sync(self) -> dict[str, int]:
        """Push locally-held order data to the remote store."""
        synced = {}
        for collection in (ORDERS, ORDER_ITEMS, PAYMENT_TRANSACTIONS):
            synced[collection] = await self._adapter.reconcile(collection)
        self.unsynced_order_ids &= self._adapter.pending_ids(ORDERS)
        return synced

    def close(self) -> None:
        self._watchdog.close()
