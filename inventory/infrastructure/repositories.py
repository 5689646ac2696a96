"""
Data access for the four inventory tables.

Repositories are stateless: every method takes the caller's Session so
that several of them can share one transaction. Absent rows come back as
``None``; raising typed errors is the services' job.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from inventory.domain.models import Location, MovementType, Product, Stock, StockMovement


class ProductRepository:
    def create(self, session: Session, sku: str, name: str,
               description: Optional[str], price: Decimal) -> Product:
        product = Product(sku=sku, name=name, description=description, price=price)
        session.add(product)
        session.flush()
        session.refresh(product)
        return product

    def get_by_id(self, session: Session, product_id: int) -> Optional[Product]:
        return session.get(Product, product_id)

    def get_by_sku(self, session: Session, sku: str) -> Optional[Product]:
        return session.execute(select(Product).where(Product.sku == sku)).scalar_one_or_none()

    def list(self, session: Session) -> List[Product]:
        return list(session.execute(select(Product).order_by(Product.id)).scalars())


class LocationRepository:
    def create(self, session: Session, name: str) -> Location:
        location = Location(name=name)
        session.add(location)
        session.flush()
        session.refresh(location)
        return location

    def get_by_id(self, session: Session, location_id: int) -> Optional[Location]:
        return session.get(Location, location_id)

    def get_by_name(self, session: Session, name: str) -> Optional[Location]:
        return session.execute(select(Location).where(Location.name == name)).scalar_one_or_none()

    def list(self, session: Session) -> List[Location]:
        return list(session.execute(select(Location).order_by(Location.id)).scalars())


def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"stock upserts are not supported on {dialect}")


class StockRepository:
    def get(self, session: Session, product_id: int, location_id: int) -> Optional[Stock]:
        return session.execute(
            select(Stock)
            .where(Stock.product_id == product_id, Stock.location_id == location_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_for_update(self, session: Session, product_id: int, location_id: int) -> Optional[Stock]:
        """Read a stock row and hold its row lock until the transaction ends."""
        return session.execute(
            select(Stock)
            .where(Stock.product_id == product_id, Stock.location_id == location_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def lock(self, session: Session, product_id: int, location_id: int, create: bool = False) -> Optional[Stock]:
        """
        Row-lock a stock pair, first inserting it at zero when ``create`` is
        set and the pair does not exist yet.

        Callers locking several pairs take them in ascending location order.
        """
        if create:
            insert = _dialect_insert(session)
            session.execute(
                insert(Stock)
                .values(product_id=product_id, location_id=location_id, quantity=0)
                .on_conflict_do_nothing(index_elements=["product_id", "location_id"])
            )
        return self.get_for_update(session, product_id, location_id)

    def increment(self, session: Session, product_id: int, location_id: int, quantity: int) -> Stock:
        """Create the pair with ``quantity`` or add to it, in one statement."""
        insert = _dialect_insert(session)
        stmt = insert(Stock).values(product_id=product_id, location_id=location_id, quantity=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=["product_id", "location_id"],
            set_={
                "quantity": Stock.quantity + stmt.excluded.quantity,
                "updated_at": func.now(),
            },
        ).returning(Stock.id)
        stock_id = session.execute(stmt).scalar_one()
        return self._reload(session, stock_id)

    def decrement(self, session: Session, product_id: int, location_id: int, quantity: int) -> Optional[Stock]:
        """
        Subtract ``quantity`` unless that would take the row below zero.

        Returns ``None`` when the pair does not exist or holds less than
        ``quantity``; nothing is written in that case.
        """
        stmt = (
            update(Stock)
            .where(
                Stock.product_id == product_id,
                Stock.location_id == location_id,
                Stock.quantity >= quantity,
            )
            .values(quantity=Stock.quantity - quantity, updated_at=func.now())
            .returning(Stock.id)
            .execution_options(synchronize_session=False)
        )
        stock_id = session.execute(stmt).scalar_one_or_none()
        if stock_id is None:
            return None
        return self._reload(session, stock_id)

    def list(self, session: Session, product_id: Optional[int] = None,
             location_id: Optional[int] = None) -> List[Stock]:
        query = select(Stock)
        if product_id is not None:
            query = query.where(Stock.product_id == product_id)
        if location_id is not None:
            query = query.where(Stock.location_id == location_id)
        return list(session.execute(query.order_by(Stock.id)).scalars())

    def list_below(self, session: Session, threshold: int) -> List[Stock]:
        return list(session.execute(
            select(Stock).where(Stock.quantity < threshold).order_by(Stock.quantity, Stock.id)
        ).scalars())

    def _reload(self, session: Session, stock_id: int) -> Stock:
        return session.execute(
            select(Stock).where(Stock.id == stock_id).execution_options(populate_existing=True)
        ).scalar_one()


class StockMovementRepository:
    def create(self, session: Session, product_id: int, movement_type: MovementType, quantity: int,
               from_location_id: Optional[int] = None,
               to_location_id: Optional[int] = None) -> StockMovement:
        movement = StockMovement(
            product_id=product_id,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            quantity=quantity,
            movement_type=movement_type.value,
        )
        session.add(movement)
        session.flush()
        session.refresh(movement)
        return movement

    def list(self, session: Session, product_id: Optional[int] = None,
             location_id: Optional[int] = None) -> List[StockMovement]:
        query = select(StockMovement)
        if product_id is not None:
            query = query.where(StockMovement.product_id == product_id)
        if location_id is not None:
            query = query.where(or_(
                StockMovement.from_location_id == location_id,
                StockMovement.to_location_id == location_id,
            ))
        return list(session.execute(
            query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        ).scalars())
