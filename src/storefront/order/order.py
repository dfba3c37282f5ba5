"""Order aggregate: an immutable checkout snapshot plus a status lifecycle.

Items and the priced summary are copied from the cart at checkout and never
change. Only ``status`` and ``updated_at`` move after creation.

State Machine:
    PENDING → DELIVERING → COMPLETED
    PENDING → COMPLETED (auto-completion)
    PROCESSING → DELIVERING → COMPLETED
    any non-terminal → CANCELLED / PAYMENT_FAILED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from storefront.cart.summary import CartSummary
from storefront.domain import storefront
from storefront.exceptions import StateError
from storefront.order.events import OrderPlaced, OrderStatusChanged


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERING = "delivering"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAYMENT_FAILED = "payment_failed"


class PaymentMethod(Enum):
    CARD = "card"
    CASH = "cash"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.DELIVERING,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.PAYMENT_FAILED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.DELIVERING,
        OrderStatus.CANCELLED,
        OrderStatus.PAYMENT_FAILED,
    },
    OrderStatus.DELIVERING: {
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.PAYMENT_FAILED,
    },
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.PAYMENT_FAILED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS.get(current, set())


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line of the order, copied from a cart line at checkout."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    water_quantity = Float(default=0.0)
    amount = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    vendor_id = Identifier(required=True)
    vendor_name = String(max_length=255)
    image = String(max_length=1024)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    customer_name = String(max_length=255)
    items = HasMany(OrderItem)
    summary = ValueObject(CartSummary)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    delivery_address = String(required=True, max_length=1000)
    payment_method = String(choices=PaymentMethod, required=True)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        customer_name,
        items_data,
        summary,
        delivery_address,
        payment_method,
        status,
    ):
        """Create a new order from a cart snapshot.

        Args:
            customer_id: The customer placing the order.
            customer_name: Display name captured at checkout.
            items_data: List of cart line dicts with product_id, product_name,
                        unit_price, water_quantity, amount, vendor_id,
                        vendor_name, image.
            summary: The ``CartSummary`` computed at checkout.
            delivery_address: Free-text delivery address.
            payment_method: ``PaymentMethod`` or its value.
            status: Initial ``OrderStatus`` decided by the payment check.
        """
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            customer_name=customer_name,
            summary=summary,
            status=OrderStatus(status).value,
            delivery_address=delivery_address,
            payment_method=PaymentMethod(payment_method).value,
            created_at=now,
            updated_at=now,
        )
        for item in items_data:
            order.add_items(
                OrderItem(
                    product_id=item["product_id"],
                    product_name=item["product_name"],
                    water_quantity=item.get("water_quantity", 0.0),
                    amount=item["amount"],
                    unit_price=item["unit_price"],
                    vendor_id=item["vendor_id"],
                    vendor_name=item.get("vendor_name"),
                    image=item.get("image"),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                status=order.status,
                payment_method=order.payment_method,
                item_count=summary.item_count,
                total=summary.total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATES

    def references_vendor(self, vendor_id) -> bool:
        return any(str(item.vendor_id) == str(vendor_id) for item in self.items)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def transition_to(self, target):
        """Move to ``target``, raising ``StateError`` if the graph forbids it."""
        target = OrderStatus(target)
        current = self.current_status
        if not can_transition(current, target):
            raise StateError(current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )
