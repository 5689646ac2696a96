from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import (
    String, Integer, Numeric, Text, DateTime, ForeignKey, CheckConstraint,
    UniqueConstraint, Index, func,
)
from decimal import Decimal
from enum import Enum
from typing import Optional
import datetime

# Column limits, checked by the services before they reach the database
SKU_MAX_LENGTH = 50
NAME_MAX_LENGTH = 255
MAX_PRICE = Decimal("99999999.99")
MAX_QUANTITY = 2_147_483_647

class Base(DeclarativeBase):
    pass

class MovementType(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    MOVE = "MOVE"

class Product(Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(primary_key=True)
    sku: Mapped[str] = mapped_column(String(SKU_MAX_LENGTH), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

class Location(Base):
    __tablename__ = "locations"
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), unique=True, index=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

class Stock(Base):
    __tablename__ = "stock"
    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"))
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"))
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        # One row per stock pair; also the conflict target for upserts
        UniqueConstraint("product_id", "location_id", name="uq_stock_product_location"),
        CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
        Index("ix_stock_location_id", "location_id"),
    )

    def __repr__(self) -> str:
        return f"<Stock product={self.product_id} location={self.location_id} qty={self.quantity}>"

class StockMovement(Base):
    """Append-only audit record, one per stock mutation."""
    __tablename__ = "stock_movements"
    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)
    # Absent for pure additions
    from_location_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("locations.id"), nullable=True
    )
    # Absent for pure removals
    to_location_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("locations.id"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer)
    movement_type: Mapped[str] = mapped_column(String(50))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        CheckConstraint(
            "(movement_type = 'ADD' AND from_location_id IS NULL AND to_location_id IS NOT NULL)"
            " OR (movement_type = 'REMOVE' AND from_location_id IS NOT NULL AND to_location_id IS NULL)"
            " OR (movement_type = 'MOVE' AND from_location_id IS NOT NULL AND to_location_id IS NOT NULL"
            " AND from_location_id <> to_location_id)",
            name="ck_stock_movements_locations_match_type",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.id}: {self.movement_type} {self.quantity} of product {self.product_id} "
            f"{self.from_location_id} -> {self.to_location_id}>"
        )
