"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the storefront's validation rules
and match the exact field names expected by the API's Pydantic request
schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker()

ACCEPTED_CARD = "4242 4242 4242 4242"
REJECTED_CARD = "4000 0000 0000 0002"

VENDORS = [
    ("vendor-blue-springs", "Blue Springs"),
    ("vendor-clear-peak", "Clear Peak"),
    ("vendor-aqua-pure", "Aqua Pure"),
]

# Litres per unit offered by the catalogue
WATER_SIZES = [0.5, 1.5, 5, 10, 19]


def customer_headers() -> dict:
    """Identity headers for a fresh simulated customer."""
    return {
        "X-Customer-Id": f"cust-lt-{uuid.uuid4().hex[:8]}",
        "X-Customer-Name": fake.name()[:100],
    }


def cart_item_data() -> dict:
    """Generate AddCartItemRequest payload."""
    vendor_id, vendor_name = random.choice(VENDORS)
    litres = random.choice(WATER_SIZES)
    return {
        "product_id": f"prod-{vendor_id[-5:]}-{litres}",
        "name": f"{fake.word().title()} Water {litres}L",
        "price": round(random.uniform(0.99, 24.99), 2),
        "vendor_id": vendor_id,
        "vendor_name": vendor_name,
        "water_quantity": litres,
        "image": fake.image_url(),
        "amount": random.randint(1, 4),
    }


def delivery_address() -> str:
    return fake.address().replace("\n", ", ")[:255]


def card_checkout_data(accepted: bool = True) -> dict:
    """Generate CheckoutRequest payload for a card payment."""
    return {
        "delivery_address": delivery_address(),
        "payment_method": "card",
        "card_number": ACCEPTED_CARD if accepted else REJECTED_CARD,
        "card_expiry": f"{random.randint(1, 12):02d}/{random.randint(27, 33)}",
        "card_cvc": f"{random.randint(100, 999)}",
        "cardholder_name": fake.name()[:100],
    }


def cash_checkout_data() -> dict:
    """Generate CheckoutRequest payload for cash on delivery."""
    return {
        "delivery_address": delivery_address(),
        "payment_method": "cash",
    }
