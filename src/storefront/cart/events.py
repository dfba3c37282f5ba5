"""Domain events for the ShoppingCart aggregate.

The cart is not persisted through a repository, so these events are not
published to a broker; ``CartStore`` drains them after every mutation and
hands them to the session's notification listener.
"""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart as a new line item."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(required=True)
    amount = Integer(required=True)
    unit_price = Float(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemIncreased:
    """A product already in the cart had its amount increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(required=True)
    previous_amount = Integer(required=True)
    new_amount = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemAmountUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_amount = Integer(required=True)
    new_amount = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line item was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_name = String()


@storefront.event(part_of="ShoppingCart")
class CartCleared:
    """All line items were removed and the fee waiver reset."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(default=0)


@storefront.event(part_of="ShoppingCart")
class DeliveryFeeWaived:
    """The delivery fee was waived for this cart."""

    __version__ = 1

    cart_id = Identifier(required=True)


@storefront.event(part_of="ShoppingCart")
class DeliveryFeeRestored:
    """A previously waived delivery fee was charged again."""

    __version__ = 1

    cart_id = Identifier(required=True)
