import os
import tempfile
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Point the ordering domain at a scratch database and the fake gateway.

    Settings are read when the domain is first imported, so the environment
    is prepared before anything imports it. The activated domain can then be
    referred to elsewhere as `current_domain`.
    """
    os.environ["STOREFRONT_ENV"] = session.config.option.env
    os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.mkdtemp()) / 'storefront-test.db'}"
    os.environ["PAYMENT_GATEWAY"] = "fake"
    os.environ["PAYMENT_GATEWAY_TIMEOUT"] = "2"

    from config import reset_settings
    from payments.gateway import reset_gateway

    reset_settings()
    reset_gateway()

    from ordering.domain import ordering

    ordering.init()
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
        elif "/bdd/" in str(test_path):
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from ordering.domain import ordering
    from shared.db import drop_db, setup_db

    setup_db(ordering)

    yield

    drop_db(ordering)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fresh fake gateway for every test; clear every database afterwards."""
    from payments.gateway import reset_gateway, set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    set_gateway(FakeGateway())

    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_gateway()


@pytest.fixture()
def fake_gateway():
    from payments.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def make_product():
    """Save a product record and return its id."""
    from ordering.catalogue import save_product

    def _make(product_id="prod-A", price="50.00", stock=10, sale_price=None, title=None, image=None):
        save_product(
            product_id=product_id,
            title=title or f"Product {product_id}",
            price=price,
            stock=stock,
            sale_price=sale_price,
            image=image,
        )
        return product_id

    return _make


@pytest.fixture()
def set_product():
    """Change catalogue values of an existing product (price moves, stock drops)."""
    from protean import current_domain

    from ordering.catalogue import ProductRecord

    def _set(product_id, **values):
        repo = current_domain.repository_for(ProductRecord)
        record = repo.get(product_id)
        for key, value in values.items():
            if key in ("price", "sale_price") and value is not None:
                value = float(value)
            setattr(record, key, value)
        repo.add(record)

    return _set


@pytest.fixture()
def address():
    from ordering.order.order import AddressSnapshot

    return AddressSnapshot(
        address_line="123 Main St",
        city="Springfield",
        postal_code="62701",
        phone="+1-555-0100",
    )


@pytest.fixture()
def catalogue():
    from ordering.catalogue import DomainCatalogue

    return DomainCatalogue()
