"""Cart pricing: the summary is derived from line items and never stored."""

from protean.fields import Boolean, Float, Integer

from storefront.config import StorefrontSettings
from storefront.domain import storefront


@storefront.value_object
class CartSummary:
    """Priced breakdown of a cart at one moment.

    ``is_delivery_fee_waived`` is the net flag: it does not say whether the
    threshold rule or the engagement waiver zeroed the fee.
    """

    subtotal = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    total = Float(default=0.0)
    item_count = Integer(default=0)
    is_delivery_fee_waived = Boolean(default=False)


def compute_summary(items, fee_waived: bool, settings: StorefrontSettings) -> CartSummary:
    """Price ``items`` (anything with ``unit_price`` and ``amount``) under ``settings``."""
    subtotal = round(sum(item.unit_price * item.amount for item in items), 2)
    item_count = sum(item.amount for item in items)

    waived_by_engagement = fee_waived and settings.engagement_waiver_enabled
    waived_by_threshold = settings.threshold_waiver_enabled and subtotal >= settings.free_delivery_threshold
    waived = waived_by_engagement or waived_by_threshold

    delivery_fee = 0.0 if waived else round(settings.delivery_fee, 2)
    return CartSummary(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        total=round(subtotal + delivery_fee, 2),
        item_count=item_count,
        is_delivery_fee_waived=waived,
    )
