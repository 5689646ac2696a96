from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from datetime import datetime

class ProductCreate(BaseModel):
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal = Decimal("0")

class ProductRead(BaseModel):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class LocationCreate(BaseModel):
    name: str

class LocationRead(BaseModel):
    id: int
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Quantities are range-checked by the ledger so the API and the CLI
# reject bad input with the same error.
class AddStockRequest(BaseModel):
    product_id: int
    location_id: int
    quantity: int

class RemoveStockRequest(BaseModel):
    product_id: int
    location_id: int
    quantity: int

class MoveStockRequest(BaseModel):
    product_id: int
    from_location_id: int
    to_location_id: int
    quantity: int

class StockRead(BaseModel):
    id: int
    product_id: int
    location_id: int
    quantity: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class StockMovementRead(BaseModel):
    id: int
    product_id: int
    from_location_id: Optional[int] = None
    to_location_id: Optional[int] = None
    quantity: int
    movement_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
