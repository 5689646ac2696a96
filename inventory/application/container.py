from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from inventory.application.location_service import LocationRegistryService
from inventory.application.product_service import ProductCatalogService
from inventory.application.stock_service import StockLedgerService
from inventory.core_settings import Settings, get_settings
from inventory.infrastructure.db import create_db_engine, make_session_factory

@dataclass
class ServiceContainer:
    """The services, built once per process and handed to the adapters."""
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    products: ProductCatalogService
    locations: LocationRegistryService
    stock: StockLedgerService

    def close(self) -> None:
        self.engine.dispose()

def build_container(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> ServiceContainer:
    settings = settings or get_settings()
    if engine is None:
        engine = create_db_engine(settings.database_url, echo=settings.DB_ECHO, pool_size=settings.DB_POOL_SIZE)
    session_factory = make_session_factory(engine)
    timeout = settings.DEFAULT_TIMEOUT_SECONDS

    products = ProductCatalogService(session_factory, default_timeout=timeout)
    locations = LocationRegistryService(session_factory, default_timeout=timeout)
    stock = StockLedgerService(
        session_factory,
        catalog=products,
        registry=locations,
        audit_required=settings.MOVEMENT_AUDIT_REQUIRED,
        default_timeout=timeout,
    )
    return ServiceContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        products=products,
        locations=locations,
        stock=stock,
    )
