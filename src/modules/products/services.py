"""Product service layer (Use Cases).

Orchestrates business logic for the catalog store, delegating
persistence to the injected ``IProductRepository``.

Business rules enforced here:
- Prices and stock are non-negative (validated by DTO / ``_non_negative``).
- Stock adjustments are atomic and clamped at zero (repository).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import structlog

from modules.products.exceptions import ProductNotFound
from modules.products.models import Product
from shared.domain.exceptions import InvalidInput

if TYPE_CHECKING:
    from modules.products.dtos import CreateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def _non_negative(value: int, field: str) -> int:
    if value < 0:
        raise InvalidInput(f"{field} cannot be negative.")
    return value


class ProductService:
    """Application service for catalog use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_product(self, dto: CreateProductDTO) -> Product:
        """Register a new product with an auto-assigned code."""
        product = Product(
            code=self._repo.next_code(),
            name=dto.name,
            description=dto.description,
            category=dto.category,
            unit=dto.unit,
            price_cost=dto.price_cost,
            price_sell=dto.price_sell,
            stock=dto.stock,
        )
        product = self._repo.save(product)
        logger.info("product.created", product_id=product.id, code=product.code)
        return product

    def update_price(self, id: str, price_sell: int) -> Product:
        """Set the sell price.  Existing cart lines and orders keep their snapshot.

        Raises:
            ProductNotFound: if the product does not exist.
            InvalidInput: if the price is negative.
        """
        product = self.get_product(id)
        old_price = product.price_sell
        product.price_sell = _non_negative(price_sell, "Price")
        self._repo.save(product)
        logger.info(
            "product.price_updated",
            product_id=id,
            old_price=old_price,
            new_price=product.price_sell,
        )
        return product

    def update_stock(self, id: str, stock: int) -> Product:
        """Overwrite the stock count.

        Raises:
            ProductNotFound: if the product does not exist.
            InvalidInput: if the stock is negative.
        """
        product = self.get_product(id)
        product.stock = _non_negative(stock, "Stock")
        self._repo.save(product)
        logger.info("product.stock_updated", product_id=id, stock=product.stock)
        return product

    def delete_product(self, id: str) -> None:
        """Remove a product from the catalog.

        Callers are responsible for checking that no open order references
        it (see ``AdminService.delete_product``).

        Raises:
            ProductNotFound: if the product does not exist.
        """
        if not self._repo.delete(id):
            raise ProductNotFound(f"Product {id} not found.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    def list_products(self) -> List[Product]:
        return self._repo.list()

    def count(self) -> int:
        return self._repo.count()
