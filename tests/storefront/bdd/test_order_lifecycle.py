"""BDD tests for checkout and the order status lifecycle."""

import pytest
from pytest_bdd import parsers, scenarios, then, when

from storefront.exceptions import StateError

scenarios("features/order_lifecycle.feature")

ADDRESS = "7 Quay Street"


@pytest.fixture()
def checkout():
    return {}


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer checks out paying by card "{card_number}"'))
def checkout_by_card(session, checkout, card_number, run_async):
    checkout["result"] = run_async(session.checkout(ADDRESS, "card", card_number))


@when("the customer checks out paying cash")
def checkout_cash(session, checkout, run_async):
    checkout["result"] = run_async(session.checkout(ADDRESS, "cash"))


@when(parsers.cfparse('the order is moved to "{status}"'))
def move_order(session, checkout, status, error, run_async):
    order = checkout["result"].order
    try:
        run_async(session.orders.update_order_status(order.id, status))
    except StateError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(checkout, status):
    assert checkout["result"].order.status == status


@then("the cart is empty")
def cart_is_empty(session):
    assert session.cart.items == []


@then(parsers.cfparse("the cart still holds {count:d} units"))
def cart_still_holds(session, count):
    assert session.cart.summary.item_count == count


@then("the status change is refused")
def status_change_refused(error):
    assert isinstance(error["exc"], StateError)
