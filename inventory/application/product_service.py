from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from inventory.core.logging_config import get_logger
from inventory.domain.errors import AlreadyExistsError, InvalidArgumentError, ProductNotFoundError
from inventory.domain.models import MAX_PRICE, NAME_MAX_LENGTH, SKU_MAX_LENGTH, Product
from inventory.infrastructure.db import session_scope
from inventory.infrastructure.repositories import ProductRepository

CENT = Decimal("0.01")

logger = get_logger(__name__)

class ProductCatalogService:
    """Creates and looks up products. SKUs are unique and never change."""

    def __init__(self, session_factory: sessionmaker, repository: Optional[ProductRepository] = None,
                 default_timeout: Optional[float] = None):
        self._session_factory = session_factory
        self._products = repository or ProductRepository()
        self._default_timeout = default_timeout

    def _timeout(self, timeout: Optional[float]) -> Optional[float]:
        return timeout if timeout is not None else self._default_timeout

    def create_product(self, sku: str, name: str, description: Optional[str] = None,
                       price: Union[Decimal, float, int, str] = Decimal("0"),
                       timeout: Optional[float] = None) -> Product:
        sku = (sku or "").strip()
        name = (name or "").strip()
        if not sku or not name:
            raise InvalidArgumentError("SKU and name are required", sku=sku, name=name)
        if len(sku) > SKU_MAX_LENGTH:
            raise InvalidArgumentError(f"SKU cannot be longer than {SKU_MAX_LENGTH} characters", sku=sku)
        if len(name) > NAME_MAX_LENGTH:
            raise InvalidArgumentError(f"name cannot be longer than {NAME_MAX_LENGTH} characters", sku=sku)
        try:
            price = Decimal(str(price))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidArgumentError(f"invalid price: {price}", sku=sku) from exc
        if not price.is_finite() or price < 0:
            raise InvalidArgumentError("price must be a non-negative number", sku=sku, price=str(price))
        if price > MAX_PRICE or price.quantize(CENT) > MAX_PRICE:
            raise InvalidArgumentError(f"price cannot exceed {MAX_PRICE}", sku=sku, price=str(price))
        price = price.quantize(CENT)

        with session_scope(self._session_factory, "create_product", self._timeout(timeout), sku=sku) as session:
            # Fast path for a clear message; the unique index is what guarantees it
            if self._products.get_by_sku(session, sku) is not None:
                raise AlreadyExistsError(f"product with SKU {sku} already exists", sku=sku)
            try:
                product = self._products.create(session, sku, name, description or None, price)
            except IntegrityError as exc:
                raise AlreadyExistsError(f"product with SKU {sku} already exists", sku=sku) from exc

        logger.info(
            f"Product created: {sku}",
            extra={'extra_fields': {'product_id': product.id, 'sku': sku}}
        )
        return product

    def get_by_sku(self, sku: str, timeout: Optional[float] = None) -> Product:
        with session_scope(self._session_factory, "get_product_by_sku", self._timeout(timeout), sku=sku) as session:
            product = self._products.get_by_sku(session, sku)
        if product is None:
            raise ProductNotFoundError(sku=sku)
        return product

    def get_by_id(self, product_id: int, timeout: Optional[float] = None) -> Product:
        with session_scope(self._session_factory, "get_product", self._timeout(timeout),
                           product_id=product_id) as session:
            return self.require(session, product_id)

    def list_products(self, timeout: Optional[float] = None) -> List[Product]:
        with session_scope(self._session_factory, "list_products", self._timeout(timeout)) as session:
            return self._products.list(session)

    def require(self, session: Session, product_id: int) -> Product:
        """Existence check inside a caller's transaction."""
        product = self._products.get_by_id(session, product_id)
        if product is None:
            raise ProductNotFoundError(product_id=product_id)
        return product
