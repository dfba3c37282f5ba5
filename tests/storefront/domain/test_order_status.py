"""Tests for the Order status state machine."""

import pytest

from storefront.cart.summary import CartSummary
from storefront.exceptions import StateError
from storefront.order.events import OrderPlaced, OrderStatusChanged
from storefront.order.order import Order, OrderStatus, PaymentMethod, can_transition

ITEMS = [
    {
        "product_id": "prod-spring-19l",
        "product_name": "Spring Water 19L",
        "unit_price": 12.5,
        "water_quantity": 19.0,
        "amount": 2,
        "vendor_id": "vendor-blue",
        "vendor_name": "Blue Springs",
        "image": "spring.jpg",
    }
]


def _order(status=OrderStatus.PENDING):
    order = Order.place(
        customer_id="cust-001",
        customer_name="Ada",
        items_data=ITEMS,
        summary=CartSummary(subtotal=25.0, delivery_fee=5.99, total=30.99, item_count=2),
        delivery_address="12 Harbour Road",
        payment_method=PaymentMethod.CASH,
        status=status,
    )
    order._events.clear()
    return order


ALLOWED = [
    (OrderStatus.PENDING, OrderStatus.DELIVERING),
    (OrderStatus.PENDING, OrderStatus.COMPLETED),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.PENDING, OrderStatus.PAYMENT_FAILED),
    (OrderStatus.PROCESSING, OrderStatus.DELIVERING),
    (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    (OrderStatus.PROCESSING, OrderStatus.PAYMENT_FAILED),
    (OrderStatus.DELIVERING, OrderStatus.COMPLETED),
    (OrderStatus.DELIVERING, OrderStatus.CANCELLED),
    (OrderStatus.DELIVERING, OrderStatus.PAYMENT_FAILED),
]

TERMINAL = [OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.PAYMENT_FAILED]


class TestPlace:
    def test_place_snapshots_items_and_summary(self):
        order = Order.place(
            customer_id="cust-001",
            customer_name="Ada",
            items_data=ITEMS,
            summary=CartSummary(subtotal=25.0, delivery_fee=5.99, total=30.99, item_count=2),
            delivery_address="12 Harbour Road",
            payment_method="card",
            status=OrderStatus.PROCESSING,
        )
        assert order.status == "processing"
        assert order.payment_method == "card"
        assert len(order.items) == 1
        assert order.items[0].unit_price == 12.5
        assert order.summary.total == 30.99
        assert order.created_at == order.updated_at
        assert isinstance(order._events[0], OrderPlaced)

    def test_items_are_independent_of_source_dicts(self):
        items = [dict(ITEMS[0])]
        order = Order.place(
            customer_id="cust-001",
            customer_name="Ada",
            items_data=items,
            summary=CartSummary(subtotal=25.0, delivery_fee=5.99, total=30.99, item_count=2),
            delivery_address="12 Harbour Road",
            payment_method="cash",
            status=OrderStatus.PENDING,
        )
        items[0]["amount"] = 99
        assert order.items[0].amount == 2

    def test_vendor_reference(self):
        order = _order()
        assert order.references_vendor("vendor-blue")
        assert not order.references_vendor("vendor-other")


class TestTransitions:
    @pytest.mark.parametrize("current,target", ALLOWED)
    def test_allowed(self, current, target):
        order = _order(current)
        previous_updated_at = order.updated_at
        order.transition_to(target)
        assert order.current_status is target
        assert order.updated_at >= previous_updated_at
        event = order._events[-1]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == current.value
        assert event.new_status == target.value

    @pytest.mark.parametrize("current", TERMINAL)
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_nothing_leaves_a_terminal_state(self, current, target):
        order = _order(current)
        with pytest.raises(StateError):
            order.transition_to(target)
        assert order.current_status is current

    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PROCESSING, OrderStatus.COMPLETED),
            (OrderStatus.PROCESSING, OrderStatus.PENDING),
            (OrderStatus.DELIVERING, OrderStatus.PENDING),
            (OrderStatus.DELIVERING, OrderStatus.PROCESSING),
            (OrderStatus.PENDING, OrderStatus.PROCESSING),
        ],
    )
    def test_rejected(self, current, target):
        order = _order(current)
        with pytest.raises(StateError) as exc:
            order.transition_to(target)
        assert exc.value.current == current.value
        assert exc.value.target == target.value
        assert order._events == []

    def test_accepts_status_values(self):
        order = _order()
        order.transition_to("delivering")
        assert order.current_status is OrderStatus.DELIVERING

    def test_terminal_flags(self):
        for status in OrderStatus:
            assert _order(status).is_terminal is (status in TERMINAL)

    def test_can_transition_helper(self):
        assert can_transition(OrderStatus.PENDING, OrderStatus.COMPLETED)
        assert not can_transition(OrderStatus.COMPLETED, OrderStatus.PENDING)
