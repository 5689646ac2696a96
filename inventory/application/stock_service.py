"""
Stock ledger: the only code that changes stock quantities.

Each mutation (add, remove, move) runs in a single transaction and appends
exactly one StockMovement. Validation and existence checks run before the
first write, so a rejected call never leaves a partial change behind.

The movement row is written in the same transaction under a SAVEPOINT.
With ``audit_required`` off, a failed audit write rolls back only that
savepoint and is logged as a warning; the stock change still commits.
With it on, the failure aborts the whole call.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from inventory.application.location_service import LocationRegistryService
from inventory.application.product_service import ProductCatalogService
from inventory.core.logging_config import get_logger
from inventory.domain.errors import InsufficientStockError, InvalidArgumentError, StockNotFoundError
from inventory.domain.models import MAX_QUANTITY, MovementType, Stock, StockMovement
from inventory.infrastructure.db import session_scope
from inventory.infrastructure.repositories import StockMovementRepository, StockRepository

logger = get_logger(__name__)


def _require_positive_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError("quantity must be an integer", quantity=quantity)
    if quantity <= 0:
        raise InvalidArgumentError("quantity must be positive", quantity=quantity)
    if quantity > MAX_QUANTITY:
        raise InvalidArgumentError(f"quantity cannot exceed {MAX_QUANTITY}", quantity=quantity)


def _require_capacity(stock: Optional[Stock], product_id: int, location_id: int, quantity: int) -> None:
    current = stock.quantity if stock is not None else 0
    if current + quantity > MAX_QUANTITY:
        raise InvalidArgumentError(
            f"stock at location {location_id} cannot exceed {MAX_QUANTITY}",
            product_id=product_id, location_id=location_id, available=current, requested=quantity,
        )


class StockLedgerService:
    def __init__(
        self,
        session_factory: sessionmaker,
        catalog: ProductCatalogService,
        registry: LocationRegistryService,
        stock_repository: Optional[StockRepository] = None,
        movement_repository: Optional[StockMovementRepository] = None,
        audit_required: bool = False,
        default_timeout: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._catalog = catalog
        self._registry = registry
        self._stock = stock_repository or StockRepository()
        self._movements = movement_repository or StockMovementRepository()
        self._audit_required = audit_required
        self._default_timeout = default_timeout

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self._default_timeout

    def add_stock(self, product_id: int, location_id: int, quantity: int,
                  timeout: Optional[float] = None) -> Stock:
        _require_positive_quantity(quantity)

        with session_scope(self._session_factory, "add_stock", self._timeout(timeout),
                           product_id=product_id, location_id=location_id) as session:
            self._catalog.require(session, product_id)
            self._registry.require(session, location_id)

            _require_capacity(self._stock.get_for_update(session, product_id, location_id),
                              product_id, location_id, quantity)
            stock = self._stock.increment(session, product_id, location_id, quantity)
            self._record_movement(session, MovementType.ADD, product_id, quantity,
                                  to_location_id=location_id)

        logger.info(
            "Stock added",
            extra={'extra_fields': {
                'product_id': product_id, 'location_id': location_id,
                'quantity': quantity, 'new_quantity': stock.quantity,
            }}
        )
        return stock

    def remove_stock(self, product_id: int, location_id: int, quantity: int,
                     timeout: Optional[float] = None) -> Stock:
        _require_positive_quantity(quantity)

        with session_scope(self._session_factory, "remove_stock", self._timeout(timeout),
                           product_id=product_id, location_id=location_id) as session:
            self._catalog.require(session, product_id)
            self._registry.require(session, location_id)

            stock = self._debit(session, product_id, location_id, quantity)
            self._record_movement(session, MovementType.REMOVE, product_id, quantity,
                                  from_location_id=location_id)

        logger.info(
            "Stock removed",
            extra={'extra_fields': {
                'product_id': product_id, 'location_id': location_id,
                'quantity': quantity, 'new_quantity': stock.quantity,
            }}
        )
        return stock

    def move_stock(self, product_id: int, from_location_id: int, to_location_id: int, quantity: int,
                   timeout: Optional[float] = None) -> Stock:
        """
        Transfer ``quantity`` between two locations and return the
        destination row.

        The debit and the credit commit together or not at all. The source
        row stays locked from the availability check to the commit, so two
        transfers out of the same pair cannot both pass the check. Both rows
        are locked in location order before either is written.
        """
        _require_positive_quantity(quantity)
        if from_location_id == to_location_id:
            raise InvalidArgumentError(
                "source and destination locations cannot be the same",
                from_location_id=from_location_id,
                to_location_id=to_location_id,
            )

        with session_scope(self._session_factory, "move_stock", self._timeout(timeout),
                           product_id=product_id, from_location_id=from_location_id,
                           to_location_id=to_location_id) as session:
            self._catalog.require(session, product_id)
            self._registry.require(session, from_location_id)
            self._registry.require(session, to_location_id)

            # Lock both rows in ascending location order
            locked = {
                location_id: self._stock.lock(session, product_id, location_id,
                                              create=location_id == to_location_id)
                for location_id in sorted((from_location_id, to_location_id))
            }
            _require_capacity(locked[to_location_id], product_id, to_location_id, quantity)

            self._debit(session, product_id, from_location_id, quantity)
            destination = self._stock.increment(session, product_id, to_location_id, quantity)
            self._record_movement(session, MovementType.MOVE, product_id, quantity,
                                  from_location_id=from_location_id, to_location_id=to_location_id)

        logger.info(
            "Stock moved",
            extra={'extra_fields': {
                'product_id': product_id, 'from_location_id': from_location_id,
                'to_location_id': to_location_id, 'quantity': quantity,
                'destination_quantity': destination.quantity,
            }}
        )
        return destination

    def get_low_stock_report(self, threshold: int, timeout: Optional[float] = None) -> List[Stock]:
        """Stock rows with quantity strictly below ``threshold``."""
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidArgumentError("threshold must be an integer", threshold=threshold)
        with session_scope(self._session_factory, "low_stock_report", self._timeout(timeout),
                           threshold=threshold) as session:
            return self._stock.list_below(session, threshold)

    def get_stock(self, product_id: int, location_id: int, timeout: Optional[float] = None) -> Stock:
        with session_scope(self._session_factory, "get_stock", self._timeout(timeout),
                           product_id=product_id, location_id=location_id) as session:
            stock = self._stock.get(session, product_id, location_id)
        if stock is None:
            raise StockNotFoundError(product_id, location_id)
        return stock

    def list_stock(self, product_id: Optional[int] = None, location_id: Optional[int] = None,
                   timeout: Optional[float] = None) -> List[Stock]:
        with session_scope(self._session_factory, "list_stock", self._timeout(timeout),
                           product_id=product_id, location_id=location_id) as session:
            return self._stock.list(session, product_id=product_id, location_id=location_id)

    def list_movements(self, product_id: Optional[int] = None, location_id: Optional[int] = None,
                       timeout: Optional[float] = None) -> List[StockMovement]:
        """Movement history, newest first. ``location_id`` matches either side."""
        with session_scope(self._session_factory, "list_movements", self._timeout(timeout),
                           product_id=product_id, location_id=location_id) as session:
            return self._movements.list(session, product_id=product_id, location_id=location_id)

    def _debit(self, session: Session, product_id: int, location_id: int, quantity: int) -> Stock:
        current = self._stock.get_for_update(session, product_id, location_id)
        available = current.quantity if current is not None else 0
        if available < quantity:
            raise InsufficientStockError(product_id, location_id, available, quantity)

        stock = self._stock.decrement(session, product_id, location_id, quantity)
        if stock is None:
            # Floor check in the UPDATE lost to a concurrent writer
            raise InsufficientStockError(product_id, location_id, available, quantity)
        return stock

    def _record_movement(self, session: Session, movement_type: MovementType, product_id: int,
                         quantity: int, from_location_id: Optional[int] = None,
                         to_location_id: Optional[int] = None) -> Optional[StockMovement]:
        if self._audit_required:
            return self._movements.create(session, product_id, movement_type, quantity,
                                          from_location_id=from_location_id,
                                          to_location_id=to_location_id)
        try:
            with session.begin_nested():
                return self._movements.create(session, product_id, movement_type, quantity,
                                              from_location_id=from_location_id,
                                              to_location_id=to_location_id)
        except SQLAlchemyError:
            logger.warning(
                "Failed to record stock movement",
                exc_info=True,
                extra={'extra_fields': {
                    'movement_type': movement_type.value, 'product_id': product_id,
                    'from_location_id': from_location_id, 'to_location_id': to_location_id,
                    'quantity': quantity,
                }}
            )
            return None
