"""
Pytest fixtures for the inventory test suite.

Every test gets a fresh in-memory SQLite database (foreign keys and
savepoints enabled, same engine setup the service uses for sqlite URLs)
and a service container wired against it.
"""

import pytest
from fastapi.testclient import TestClient

from inventory.application.container import build_container
from inventory.core_settings import Settings
from inventory.infrastructure.db import create_db_engine, init_models
from inventory.main import create_app


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        AUTO_MIGRATE=False,
        LOW_STOCK_THRESHOLD=10,
        MOVEMENT_AUDIT_REQUIRED=False,
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url)
    init_models(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def container(settings, engine):
    return build_container(settings, engine=engine)


@pytest.fixture
def products(container):
    return container.products


@pytest.fixture
def locations(container):
    return container.locations


@pytest.fixture
def ledger(container):
    return container.stock


@pytest.fixture
def warehouse(products, locations):
    """Product ABC123 and two empty locations, WH-01 and WH-02."""
    product = products.create_product("ABC123", "Widget", "Blue widget", "9.99")
    wh1 = locations.create_location("WH-01")
    wh2 = locations.create_location("WH-02")
    return product, wh1, wh2


@pytest.fixture
def client(container):
    app = create_app(container, configure_logging=False)
    with TestClient(app) as test_client:
        yield test_client
