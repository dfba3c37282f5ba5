"""CartStore: a customer's cart, kept in the local cache between requests.

Wraps the ``ShoppingCart`` aggregate. Every mutation is written back to the
cache under the ``cart:`` keys and the aggregate's events are drained to the
notification listener (the storefront's "toast"). The summary is never
cached; it is recomputed on every read.
"""

import copy
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from storefront.cart.cart import CartLineItem, ShoppingCart
from storefront.cart.summary import CartSummary
from storefront.config import StorefrontSettings
from storefront.persistence.local_cache import LocalCache

logger = structlog.get_logger(__name__)

CART_ID_KEY = "cart:id"
CART_ITEMS_KEY = "cart:items"
CART_WAIVER_KEY = "cart:fee_waived"

LINE_FIELDS = (
    "id",
    "product_id",
    "product_name",
    "unit_price",
    "water_quantity",
    "amount",
    "vendor_id",
    "vendor_name",
    "image",
)


def line_to_dict(item: CartLineItem) -> dict:
    data = {name: getattr(item, name) for name in LINE_FIELDS}
    data["id"] = str(data["id"])
    data["product_id"] = str(data["product_id"])
    data["vendor_id"] = str(data["vendor_id"])
    return data


@dataclass(frozen=True)
class CartSnapshot:
    """Line items and summary frozen at one moment, as handed to checkout."""

    items: list[dict] = field(default_factory=list)
    summary: CartSummary | None = None

    @property
    def is_empty(self) -> bool:
        return not self.items


class CartStore:
    def __init__(
        self,
        cache: LocalCache,
        settings: StorefrontSettings | None = None,
        customer_id: str | None = None,
        notify: Callable | None = None,
    ) -> None:
        self._cache = cache
        self._settings = settings or StorefrontSettings()
        self._customer_id = customer_id
        self._notify = notify
        self._cart = self._load()

    def _load(self) -> ShoppingCart:
        cart_id = self._cache.get(CART_ID_KEY)
        kwargs = {"customer_id": self._customer_id, "delivery_fee_waived": bool(self._cache.get(CART_WAIVER_KEY, False))}
        if cart_id:
            kwargs["id"] = cart_id
        cart = ShoppingCart(**kwargs)

        for row in self._cache.get(CART_ITEMS_KEY, []):
            cart.add_items(CartLineItem(**{name: row[name] for name in LINE_FIELDS if name in row}))

        if not cart_id:
            self._cache.set(CART_ID_KEY, str(cart.id))
        return cart

    def _commit(self) -> None:
        self._cache.set(CART_ITEMS_KEY, [line_to_dict(item) for item in self._cart.items])
        self._cache.set(CART_WAIVER_KEY, bool(self._cart.delivery_fee_waived))

        events = list(self._cart._events)
        self._cart._events.clear()
        for event in events:
            logger.info(
                "Cart changed",
                change=event.__class__.__name__,
                cart_id=str(self._cart.id),
                customer_id=self._customer_id,
            )
            if self._notify is not None:
                self._notify(event)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def cart_id(self) -> str:
        return str(self._cart.id)

    @property
    def items(self) -> list[dict]:
        return [line_to_dict(item) for item in self._cart.items]

    @property
    def is_delivery_fee_waived(self) -> bool:
        return bool(self._cart.delivery_fee_waived)

    @property
    def summary(self) -> CartSummary:
        return self._cart.summarize(self._settings)

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(items=copy.deepcopy(self.items), summary=self.summary)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(self, product, amount=1) -> dict:
        item = self._cart.add_item(product, amount)
        self._commit()
        return line_to_dict(item)

    def update_amount(self, item_id, new_amount) -> dict | None:
        item = self._cart.update_amount(item_id, new_amount)
        self._commit()
        return line_to_dict(item) if item is not None else None

    def remove_item(self, item_id) -> bool:
        removed = self._cart.remove_item(item_id)
        self._commit()
        return removed

    def clear_cart(self) -> None:
        self._cart.clear()
        self._commit()

    def waive_delivery_fee(self) -> None:
        self._cart.waive_delivery_fee()
        self._commit()

    def restore_delivery_fee(self) -> None:
        self._cart.restore_delivery_fee()
        self._commit()
