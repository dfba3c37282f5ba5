"""Simulated payment check.

There is no payment gateway: a card is accepted if and only if its digits,
after separators are removed, start with the configured test prefix. Cash is
never rejected at checkout and is collected on delivery.
"""

import re
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError

from storefront.order.order import OrderStatus, PaymentMethod

_SEPARATORS = re.compile(r"[\s\-]")
_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/\d{2}$")


class PaymentStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CASH_ON_DELIVERY = "cash_on_delivery"


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of the payment check for one checkout."""

    method: PaymentMethod
    accepted: bool
    status: PaymentStatus
    transaction_id: str
    card_last4: str | None = None

    @property
    def initial_order_status(self) -> OrderStatus:
        if self.method is PaymentMethod.CASH:
            return OrderStatus.PENDING
        return OrderStatus.PROCESSING if self.accepted else OrderStatus.PAYMENT_FAILED

    @property
    def details(self) -> str:
        if self.method is PaymentMethod.CASH:
            return "Cash on delivery"
        return "Payment successful" if self.accepted else "Payment failed"


def normalize_card_number(card_number: str) -> str:
    return _SEPARATORS.sub("", card_number or "")


def evaluate_payment(method, card_number=None, accepted_prefix="4242") -> PaymentOutcome:
    method = PaymentMethod(method)
    transaction_id = f"tr_{uuid4().hex}"

    if method is PaymentMethod.CASH:
        return PaymentOutcome(
            method=method,
            accepted=True,
            status=PaymentStatus.CASH_ON_DELIVERY,
            transaction_id=transaction_id,
        )

    digits = normalize_card_number(card_number)
    accepted = bool(digits) and digits.startswith(accepted_prefix)
    return PaymentOutcome(
        method=method,
        accepted=accepted,
        status=PaymentStatus.COMPLETED if accepted else PaymentStatus.FAILED,
        transaction_id=transaction_id,
        card_last4=digits[-4:] or None,
    )


def validate_card_details(card_number, expiry, cvc, cardholder_name) -> None:
    """Check card input format. Raises ``ValidationError`` listing every bad field."""
    errors = {}

    digits = normalize_card_number(card_number)
    if not digits.isdigit() or len(digits) != 16:
        errors["card_number"] = ["Card number must have 16 digits"]
    if not expiry or not _EXPIRY.match(expiry.strip()):
        errors["card_expiry"] = ["Expiry date must be in MM/YY format"]
    if not cvc or not cvc.isdigit() or len(cvc) not in (3, 4):
        errors["card_cvc"] = ["CVC must have 3 or 4 digits"]
    if not cardholder_name or not cardholder_name.strip():
        errors["cardholder_name"] = ["Cardholder name is required"]

    if errors:
        raise ValidationError(errors)
