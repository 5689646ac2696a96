from fastapi import Request

from inventory.application.container import ServiceContainer
from inventory.application.location_service import LocationRegistryService
from inventory.application.product_service import ProductCatalogService
from inventory.application.stock_service import StockLedgerService

def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container

def get_product_service(request: Request) -> ProductCatalogService:
    return get_container(request).products

def get_location_service(request: Request) -> LocationRegistryService:
    return get_container(request).locations

def get_stock_service(request: Request) -> StockLedgerService:
    return get_container(request).stock
