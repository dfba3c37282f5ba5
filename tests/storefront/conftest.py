import pytest
from protean.integrations.pytest import DomainFixture

from storefront.cart.product import Product
from storefront.cart.store import CartStore
from storefront.config import StorefrontSettings
from storefront.persistence.adapter import AuthAwareAdapter, LocalOnlyAdapter, RemoteBackedAdapter
from storefront.persistence.fake_adapter import FakeDocumentStore
from storefront.persistence.local_cache import LocalCache


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
def make_product(**overrides):
    defaults = {
        "id": "prod-spring-19l",
        "name": "Spring Water 19L",
        "price": 12.5,
        "vendor_id": "vendor-blue",
        "vendor_name": "Blue Springs",
        "water_quantity": 19.0,
        "image": "spring-19l.jpg",
    }
    defaults.update(overrides)
    return Product(**defaults)


@pytest.fixture
def settings():
    return StorefrontSettings()


@pytest.fixture
def cache():
    return LocalCache()


@pytest.fixture
def remote():
    return FakeDocumentStore()


@pytest.fixture
def local_adapter(cache):
    return LocalOnlyAdapter(cache)


@pytest.fixture
def remote_adapter(remote, local_adapter):
    return RemoteBackedAdapter(remote, local_adapter)


@pytest.fixture
def adapter(cache, remote):
    return AuthAwareAdapter(cache, remote=remote)


@pytest.fixture
def spring_water():
    return make_product()


@pytest.fixture
def sparkling_water():
    return make_product(
        id="prod-sparkling-1l",
        name="Sparkling Water 1.5L",
        price=2.25,
        vendor_id="vendor-peak",
        vendor_name="Clear Peak",
        water_quantity=1.5,
        image="sparkling.jpg",
    )


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def cart_store(cache, settings, notifications):
    return CartStore(cache, settings, customer_id="cust-001", notify=notifications.append)


@pytest.fixture
def product_factory():
    return make_product
