"""Shared BDD fixtures for the storefront."""

import asyncio

import pytest
from pytest_bdd import given, parsers

from storefront.cart.store import CartStore
from storefront.config import StorefrontSettings
from storefront.session import StorefrontSession


@pytest.fixture()
def error():
    """Container for captured errors."""
    return {"exc": None}


@pytest.fixture()
def run_async():
    """Run coroutines from synchronous steps on one loop kept for the scenario."""
    loop = asyncio.new_event_loop()
    yield loop.run_until_complete
    loop.close()


@pytest.fixture()
def cart(cache, settings):
    return CartStore(cache, settings, customer_id="cust-001")


@pytest.fixture()
def session(remote, cache, run_async):
    session = StorefrontSession("cust-001", "Ada Lovelace", settings=StorefrontSettings(), remote=remote, cache=cache)
    yield session
    session.teardown()


@given("an empty cart")
def empty_cart(cart):
    assert cart.items == []


@given(parsers.cfparse("a cart with {amount:d} units priced {price:f}"))
def session_cart(session, product_factory, amount, price):
    session.cart.add_item(product_factory(price=price), amount)
