"""FastAPI routes for the Storefront API: cart, engagement gate and orders."""

from fastapi import APIRouter, Depends, Response
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.api.dependencies import current_session, customer_id_header, get_registry
from storefront.api.schemas import (
    AddCartItemRequest,
    CartResponse,
    CartSummarySchema,
    CheckoutRequest,
    CheckoutResponse,
    EngagementResponse,
    OrderResponse,
    StatusResponse,
    SyncResponse,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
)
from storefront.cart.product import Product
from storefront.order.order import OrderStatus, PaymentMethod
from storefront.order.payment import validate_card_details
from storefront.session import StorefrontSession


def _summary_schema(summary) -> CartSummarySchema:
    return CartSummarySchema(
        subtotal=summary.subtotal,
        delivery_fee=summary.delivery_fee,
        total=summary.total,
        item_count=summary.item_count,
        is_delivery_fee_waived=summary.is_delivery_fee_waived,
    )


def _cart_response(session: StorefrontSession) -> CartResponse:
    return CartResponse(
        cart_id=session.cart.cart_id,
        items=session.cart.items,
        summary=_summary_schema(session.cart.summary),
    )


def _order_response(session: StorefrontSession, order) -> OrderResponse:
    return OrderResponse(
        id=str(order.id),
        customer_id=str(order.customer_id),
        customer_name=order.customer_name,
        status=order.status,
        delivery_address=order.delivery_address,
        payment_method=order.payment_method,
        items=[
            {
                "id": str(item.id),
                "product_id": str(item.product_id),
                "product_name": item.product_name,
                "water_quantity": item.water_quantity,
                "amount": item.amount,
                "unit_price": item.unit_price,
                "vendor_id": str(item.vendor_id),
                "vendor_name": item.vendor_name,
                "image": item.image,
            }
            for item in order.items
        ],
        summary=_summary_schema(order.summary),
        created_at=order.created_at,
        updated_at=order.updated_at,
        synced=str(order.id) not in session.orders.unsynced_order_ids,
    )


def _engagement_response(gate) -> EngagementResponse:
    return EngagementResponse(
        state=gate.state.value,
        progress=gate.progress,
        is_open=gate.is_open,
        completion_fired=gate.completion_fired,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(session: StorefrontSession = Depends(current_session)) -> CartResponse:
    return _cart_response(session)


@cart_router.post("/items", status_code=201, response_model=CartResponse)
async def add_cart_item(body: AddCartItemRequest, session: StorefrontSession = Depends(current_session)) -> CartResponse:
    product = Product(
        id=body.product_id,
        name=body.name,
        price=body.price,
        vendor_id=body.vendor_id,
        vendor_name=body.vendor_name,
        water_quantity=body.water_quantity,
        image=body.image,
    )
    session.cart.add_item(product, body.amount)
    return _cart_response(session)


@cart_router.put("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: str, body: UpdateCartItemRequest, session: StorefrontSession = Depends(current_session)
) -> CartResponse:
    session.cart.update_amount(item_id, body.amount)
    return _cart_response(session)


@cart_router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(item_id: str, session: StorefrontSession = Depends(current_session)) -> CartResponse:
    session.cart.remove_item(item_id)
    return _cart_response(session)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(session: StorefrontSession = Depends(current_session)) -> CartResponse:
    session.cart.clear_cart()
    return _cart_response(session)


@cart_router.post("/delivery-fee/waive", response_model=CartResponse)
async def waive_delivery_fee(session: StorefrontSession = Depends(current_session)) -> CartResponse:
    session.cart.waive_delivery_fee()
    return _cart_response(session)


@cart_router.post("/delivery-fee/restore", response_model=CartResponse)
async def restore_delivery_fee(session: StorefrontSession = Depends(current_session)) -> CartResponse:
    session.cart.restore_delivery_fee()
    return _cart_response(session)


@cart_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest, response: Response, session: StorefrontSession = Depends(current_session)
) -> CheckoutResponse:
    """Create an order from the cart.

    1. Validate card details (card payments only)
    2. Create the order from a snapshot of the cart
    3. Clear the cart unless the payment was rejected (402)
    """
    if body.payment_method == PaymentMethod.CARD.value:
        validate_card_details(body.card_number, body.card_expiry, body.card_cvc, body.cardholder_name)

    result = await session.checkout(body.delivery_address, body.payment_method, card_number=body.card_number)
    if result.order.current_status is OrderStatus.PAYMENT_FAILED:
        response.status_code = 402
    return CheckoutResponse(order=_order_response(session, result.order), cart_cleared=result.cart_cleared)


# ---------------------------------------------------------------------------
# Engagement gate (delivery fee waiver)
# ---------------------------------------------------------------------------
def _current_gate(session: StorefrontSession):
    if session.gate is None:
        raise ObjectNotFoundError("No engagement gate has been started")
    return session.gate


@cart_router.post("/engagement", status_code=201, response_model=EngagementResponse)
async def start_engagement(session: StorefrontSession = Depends(current_session)) -> EngagementResponse:
    gate = session.start_engagement()
    gate.play()
    return _engagement_response(gate)


@cart_router.get("/engagement", response_model=EngagementResponse)
async def get_engagement(session: StorefrontSession = Depends(current_session)) -> EngagementResponse:
    return _engagement_response(_current_gate(session))


_GATE_ACTIONS = {
    "play": lambda gate: gate.play(),
    "pause": lambda gate: gate.pause(),
    "visibility-lost": lambda gate: gate.visibility_lost(),
    "skip": lambda gate: gate.skip(),
    "rendered": lambda gate: gate.signal_rendered(),
}


@cart_router.post("/engagement/{action}", response_model=EngagementResponse)
async def engagement_action(action: str, session: StorefrontSession = Depends(current_session)) -> EngagementResponse:
    handler = _GATE_ACTIONS.get(action)
    if handler is None:
        raise ValidationError({"action": [f"Unknown engagement action: {action}"]})
    gate = _current_gate(session)
    handler(gate)
    return _engagement_response(gate)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(session: StorefrontSession = Depends(current_session)) -> list[OrderResponse]:
    orders = await session.orders.load_orders(session.customer_id)
    return [_order_response(session, order) for order in orders]


@order_router.get("/vendor/{vendor_id}", response_model=list[OrderResponse])
async def list_vendor_orders(vendor_id: str, session: StorefrontSession = Depends(current_session)) -> list[OrderResponse]:
    await session.orders.load_orders(session.customer_id)
    return [_order_response(session, order) for order in session.orders.get_orders_by_vendor(vendor_id)]


@order_router.post("/sync", response_model=SyncResponse)
async def sync_orders(session: StorefrontSession = Depends(current_session)) -> SyncResponse:
    synced = await session.orders.sync()
    return SyncResponse(synced=synced, unsynced_order_ids=sorted(session.orders.unsynced_order_ids))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, session: StorefrontSession = Depends(current_session)) -> OrderResponse:
    order = session.orders.get_order(order_id)
    if order is None:
        await session.orders.load_orders(session.customer_id)
        order = session.orders.get_order(order_id)
    if order is None:
        raise ObjectNotFoundError(f"Order {order_id} does not exist")
    return _order_response(session, order)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, session: StorefrontSession = Depends(current_session)
) -> OrderResponse:
    if session.orders.get_order(order_id) is None:
        await session.orders.load_orders(session.customer_id)
    order = await session.orders.update_order_status(order_id, body.status)
    return _order_response(session, order)


# ---------------------------------------------------------------------------
# Session Router
# ---------------------------------------------------------------------------
session_router = APIRouter(tags=["session"])


@session_router.delete("/session", response_model=StatusResponse)
async def end_session(customer_id: str = Depends(customer_id_header)) -> StatusResponse:
    """Log out: tear down the customer's session and its timers."""
    ended = get_registry().end(customer_id)
    return StatusResponse(status="ended" if ended else "no_session")
