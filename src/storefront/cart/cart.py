"""Shopping Cart aggregate: line items and the delivery-fee waiver flag.

The cart holds at most one line item per product; adding a product that is
already present increases its amount. Unit prices are copied from the product
when the line is created and are not refreshed afterwards. The priced summary
is recomputed from the lines on every call to ``summarize``.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from storefront.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemAmountUpdated,
    CartItemIncreased,
    CartItemRemoved,
    DeliveryFeeRestored,
    DeliveryFeeWaived,
)
from storefront.cart.summary import compute_summary
from storefront.domain import storefront


@storefront.entity(part_of="ShoppingCart")
class CartLineItem:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    water_quantity = Float(default=0.0)  # Litres per unit, display only
    amount = Integer(required=True, min_value=1)
    vendor_id = Identifier(required=True)
    vendor_name = String(max_length=255)
    image = String(max_length=1024)


@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier()
    items = HasMany(CartLineItem)
    delivery_fee_waived = Boolean(default=False)
    updated_at = DateTime()

    def _find_item(self, item_id):
        return next((i for i in self.items if str(i.id) == str(item_id)), None)

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, amount=1):
        """Add ``amount`` units of ``product``, merging into an existing line."""
        if not isinstance(amount, int) or amount < 1:
            raise ValidationError({"amount": ["Amount must be a whole number of at least 1"]})

        existing = next((i for i in self.items if str(i.product_id) == str(product.id)), None)
        if existing:
            previous_amount = existing.amount
            existing.amount = previous_amount + amount
            self._touch()
            self.raise_(
                CartItemIncreased(
                    cart_id=str(self.id),
                    item_id=str(existing.id),
                    product_id=str(product.id),
                    product_name=existing.product_name,
                    previous_amount=previous_amount,
                    new_amount=existing.amount,
                )
            )
            return existing

        item = CartLineItem(
            product_id=product.id,
            product_name=product.name,
            unit_price=product.price,
            water_quantity=product.water_quantity,
            amount=amount,
            vendor_id=product.vendor_id,
            vendor_name=product.vendor_name,
            image=product.image,
        )
        self.add_items(item)
        self._touch()
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product.id),
                product_name=product.name,
                amount=amount,
                unit_price=product.price,
            )
        )
        return item

    def update_amount(self, item_id, new_amount):
        """Set a line's amount exactly. Zero or less removes the line."""
        if not isinstance(new_amount, int):
            raise ValidationError({"amount": ["Amount must be a whole number"]})
        if new_amount <= 0:
            self.remove_item(item_id)
            return None

        item = self._find_item(item_id)
        if item is None:
            return None

        previous_amount = item.amount
        item.amount = new_amount
        self._touch()
        self.raise_(
            CartItemAmountUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                previous_amount=previous_amount,
                new_amount=item.amount,
            )
        )
        return item

    def remove_item(self, item_id):
        """Remove a line if present. Returns whether anything was removed."""
        item = self._find_item(item_id)
        if item is None:
            return False

        self.remove_items(item)
        self._touch()
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
                product_name=item.product_name,
            )
        )
        return True

    def clear(self):
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        self.delivery_fee_waived = False
        self._touch()
        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    # -------------------------------------------------------------------
    # Delivery fee waiver
    # -------------------------------------------------------------------
    def waive_delivery_fee(self):
        if self.delivery_fee_waived:
            return
        self.delivery_fee_waived = True
        self._touch()
        self.raise_(DeliveryFeeWaived(cart_id=str(self.id)))

    def restore_delivery_fee(self):
        if not self.delivery_fee_waived:
            return
        self.delivery_fee_waived = False
        self._touch()
        self.raise_(DeliveryFeeRestored(cart_id=str(self.id)))

    def summarize(self, settings):
        return compute_summary(self.items, self.delivery_fee_waived, settings)
