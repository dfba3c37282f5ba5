"""Row mapping between the Order aggregate and the stored collections.

An order is stored as one ``orders`` row, one ``order_items`` row per line and
one ``payment_transactions`` row. Timestamps are ISO-8601 strings.
"""

from datetime import datetime
from uuid import uuid4

from storefront.cart.summary import CartSummary
from storefront.order.order import Order, OrderItem

ORDERS = "orders"
ORDER_ITEMS = "order_items"
PAYMENT_TRANSACTIONS = "payment_transactions"


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _parse(value):
    return datetime.fromisoformat(value) if isinstance(value, str) else value


def order_row(order: Order) -> dict:
    return {
        "id": str(order.id),
        "user_id": str(order.customer_id),
        "customer_name": order.customer_name,
        "delivery_address": order.delivery_address,
        "payment_method": order.payment_method,
        "status": order.status,
        "subtotal": order.summary.subtotal,
        "delivery_fee": order.summary.delivery_fee,
        "total": order.summary.total,
        "item_count": order.summary.item_count,
        "is_delivery_fee_waived": order.summary.is_delivery_fee_waived,
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
    }


def item_rows(order: Order) -> list[dict]:
    return [
        {
            "id": str(item.id),
            "order_id": str(order.id),
            "product_id": str(item.product_id),
            "product_name": item.product_name,
            "quantity": item.water_quantity,
            "amount": item.amount,
            "price": item.unit_price,
            "vendor_id": str(item.vendor_id),
            "vendor_name": item.vendor_name,
            "image": item.image,
        }
        for item in order.items
    ]


def payment_row(order: Order, outcome) -> dict:
    transaction_data = {"payment_details": outcome.details}
    if outcome.card_last4:
        transaction_data["card_last4"] = outcome.card_last4

    return {
        "id": str(uuid4()),
        "order_id": str(order.id),
        "payment_method": outcome.method.value,
        "amount": order.summary.total,
        "status": outcome.status.value,
        "transaction_id": outcome.transaction_id,
        "transaction_data": transaction_data,
        "created_at": _iso(order.created_at),
    }


def status_patch(order: Order) -> dict:
    return {"status": order.status, "updated_at": _iso(order.updated_at)}


def order_from_rows(row: dict, items: list[dict]) -> Order:
    """Rebuild an Order from its stored rows without raising events."""
    order = Order(
        id=row["id"],
        customer_id=row["user_id"],
        customer_name=row.get("customer_name"),
        summary=CartSummary(
            subtotal=row.get("subtotal", 0.0),
            delivery_fee=row.get("delivery_fee", 0.0),
            total=row.get("total", 0.0),
            item_count=row.get("item_count", sum(item.get("amount", 0) for item in items)),
            is_delivery_fee_waived=row.get("is_delivery_fee_waived", False),
        ),
        status=row["status"],
        delivery_address=row["delivery_address"],
        payment_method=row["payment_method"],
        created_at=_parse(row.get("created_at")),
        updated_at=_parse(row.get("updated_at")),
    )
    for item in items:
        order.add_items(
            OrderItem(
                id=item["id"],
                product_id=item["product_id"],
                product_name=item["product_name"],
                water_quantity=item.get("quantity", 0.0),
                amount=item["amount"],
                unit_price=item["price"],
                vendor_id=item["vendor_id"],
                vendor_name=item.get("vendor_name"),
                image=item.get("image"),
            )
        )
    return order
