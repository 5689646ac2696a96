from typing import Optional

from fastapi import APIRouter, Depends, Request

from inventory.api.dependencies import get_location_service, get_product_service, get_stock_service
from inventory.application.location_service import LocationRegistryService
from inventory.application.product_service import ProductCatalogService
from inventory.application.schemas import (
    AddStockRequest,
    LocationCreate,
    LocationRead,
    MoveStockRequest,
    ProductCreate,
    ProductRead,
    RemoveStockRequest,
    StockMovementRead,
    StockRead,
)
from inventory.application.stock_service import StockLedgerService
from inventory.domain.errors import InvalidArgumentError

products_router = APIRouter(prefix="/products", tags=["products"])
locations_router = APIRouter(prefix="/locations", tags=["locations"])
stock_router = APIRouter(prefix="/stock", tags=["stock"])
movements_router = APIRouter(prefix="/movements", tags=["movements"])

@products_router.get("/", response_model=list[ProductRead])
def list_products(service: ProductCatalogService = Depends(get_product_service)):
    return service.list_products()

@products_router.post("/", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, service: ProductCatalogService = Depends(get_product_service)):
    return service.create_product(payload.sku, payload.name, payload.description, payload.price)

@products_router.get("/{sku}", response_model=ProductRead)
def get_product_by_sku(sku: str, service: ProductCatalogService = Depends(get_product_service)):
    return service.get_by_sku(sku)

@locations_router.get("/", response_model=list[LocationRead])
def list_locations(service: LocationRegistryService = Depends(get_location_service)):
    return service.list_locations()

@locations_router.post("/", response_model=LocationRead, status_code=201)
def create_location(payload: LocationCreate, service: LocationRegistryService = Depends(get_location_service)):
    return service.create_location(payload.name)

@locations_router.get("/{name}", response_model=LocationRead)
def get_location_by_name(name: str, service: LocationRegistryService = Depends(get_location_service)):
    return service.get_by_name(name)

@stock_router.get("/", response_model=list[StockRead])
def list_stock(product_id: Optional[int] = None, location_id: Optional[int] = None,
               service: StockLedgerService = Depends(get_stock_service)):
    return service.list_stock(product_id=product_id, location_id=location_id)

@stock_router.post("/add", response_model=StockRead)
def add_stock(payload: AddStockRequest, service: StockLedgerService = Depends(get_stock_service)):
    return service.add_stock(payload.product_id, payload.location_id, payload.quantity)

@stock_router.post("/remove", response_model=StockRead)
def remove_stock(payload: RemoveStockRequest, service: StockLedgerService = Depends(get_stock_service)):
    return service.remove_stock(payload.product_id, payload.location_id, payload.quantity)

@stock_router.post("/move", response_model=StockRead)
def move_stock(payload: MoveStockRequest, service: StockLedgerService = Depends(get_stock_service)):
    return service.move_stock(payload.product_id, payload.from_location_id, payload.to_location_id, payload.quantity)

@stock_router.get("/low-stock", response_model=list[StockRead])
def low_stock_report(request: Request, threshold: Optional[int] = None,
                     service: StockLedgerService = Depends(get_stock_service)):
    if threshold is None:
        threshold = request.app.state.container.settings.LOW_STOCK_THRESHOLD
    if threshold < 0:
        raise InvalidArgumentError("threshold must be a non-negative integer", threshold=threshold)
    return service.get_low_stock_report(threshold)

@movements_router.get("/", response_model=list[StockMovementRead])
def list_movements(product_id: Optional[int] = None, location_id: Optional[int] = None,
                   service: StockLedgerService = Depends(get_stock_service)):
    return service.list_movements(product_id=product_id, location_id=location_id)

resource_routers = [products_router, locations_router, stock_router, movements_router]

api_router = APIRouter(prefix="/api/v1")
for resource_router in resource_routers:
    api_router.include_router(resource_router)
