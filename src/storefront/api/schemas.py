"""Pydantic request/response schemas for the Storefront API.

These are external contracts, separate from the cart and order aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartSummarySchema(BaseModel):
    subtotal: float
    delivery_fee: float
    total: float
    item_count: int
    is_delivery_fee_waived: bool


class CartItemSchema(BaseModel):
    id: str
    product_id: str
    product_name: str
    unit_price: float
    water_quantity: float = 0.0
    amount: int
    vendor_id: str
    vendor_name: str | None = None
    image: str | None = None


class OrderItemSchema(BaseModel):
    id: str
    product_id: str
    product_name: str
    water_quantity: float = 0.0
    amount: int
    unit_price: float
    vendor_id: str
    vendor_name: str | None = None
    image: str | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    name: str
    price: float = Field(ge=0)
    vendor_id: str
    vendor_name: str
    water_quantity: float = Field(ge=0, default=0.0)
    image: str = ""
    amount: int = Field(ge=1, default=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-19l-spring",
                    "name": "Spring Water 19L",
                    "price": 12.5,
                    "vendor_id": "vendor-001",
                    "vendor_name": "Blue Springs",
                    "water_quantity": 19,
                    "image": "https://cdn.example.com/spring-19l.jpg",
                    "amount": 2,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    amount: int  # Zero or less removes the item


class CheckoutRequest(BaseModel):
    delivery_address: str
    payment_method: str
    card_number: str | None = None
    card_expiry: str | None = None
    card_cvc: str | None = None
    cardholder_name: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "delivery_address": "12 Harbour Road, Springfield",
                    "payment_method": "card",
                    "card_number": "4242 4242 4242 4242",
                    "card_expiry": "12/29",
                    "card_cvc": "123",
                    "cardholder_name": "Ada Lovelace",
                },
                {
                    "delivery_address": "12 Harbour Road, Springfield",
                    "payment_method": "cash",
                },
            ]
        }
    }


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CartResponse(BaseModel):
    cart_id: str
    items: list[CartItemSchema]
    summary: CartSummarySchema


class EngagementResponse(BaseModel):
    state: str
    progress: float
    is_open: bool
    completion_fired: bool


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    customer_name: str | None = None
    status: str
    delivery_address: str
    payment_method: str
    items: list[OrderItemSchema]
    summary: CartSummarySchema
    created_at: datetime | None = None
    updated_at: datetime | None = None
    synced: bool = True


class CheckoutResponse(BaseModel):
    order: OrderResponse
    cart_cleared: bool


class SyncResponse(BaseModel):
    synced: dict[str, int]
    unsynced_order_ids: list[str]
