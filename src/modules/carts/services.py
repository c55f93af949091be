"""Cart engine.

Each actor's cart is the ordered ``cart`` list of their session
(insertion order = add order).  Lines snapshot the product name and sell
price at add time.

Stock policy: the cart does not reserve stock, but an addition is
refused when the quantity already in the cart plus the requested
quantity would exceed the product's live stock.  Stock is only
decremented when an admin accepts the resulting order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

import structlog

from modules.carts.exceptions import (
    CartLineNotFound,
    InvalidQuantity,
    ProductOutOfStock,
)
from modules.carts.models import CartLine
from modules.conversations.models import Session
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.conversations.repositories.interfaces import ISessionRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CartService:
    """Application service for per-actor carts."""

    def __init__(
        self,
        session_repository: ISessionRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._sessions = session_repository
        self._products = product_repository

    def _session(self, actor_id: str) -> Session:
        session = self._sessions.get_by_id(actor_id)
        if session is None:
            session = self._sessions.save(Session(actor_id=actor_id))
        return session

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_line(self, actor_id: str, product_id: str, quantity: int = 1) -> CartLine:
        """Add *quantity* units of a product, merging with an existing line.

        Raises:
            InvalidQuantity: quantity is not positive.
            ProductNotFound: the product does not exist.
            ProductOutOfStock: live stock is exhausted or would be exceeded.
        """
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1.")

        product = self._products.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found.")

        with self._sessions.locked():
            session = self._session(actor_id)
            line = session.find_line(product_id)
            in_cart = line.quantity if line else 0

            if product.stock <= 0 or in_cart + quantity > product.stock:
                logger.info(
                    "cart.out_of_stock",
                    actor_id=actor_id,
                    product_id=product_id,
                    requested=in_cart + quantity,
                    stock=product.stock,
                )
                raise ProductOutOfStock(
                    f"{product.name}: requested {in_cart + quantity}, "
                    f"available {product.stock}."
                )

            if line is None:
                line = CartLine(
                    product_id=product.id,
                    name=product.name,
                    unit_price=product.price_sell,
                    quantity=quantity,
                )
                session.cart.append(line)
            else:
                line.quantity += quantity
            self._sessions.save(session)

        logger.info(
            "cart.line_added",
            actor_id=actor_id,
            product_id=product_id,
            quantity=line.quantity,
        )
        return line

    def decrement_line(self, actor_id: str, product_id: str, quantity: int = 1) -> int:
        """Lower a line's quantity, removing the line at zero.

        Returns the remaining quantity (``0`` when the line was removed).

        Raises:
            InvalidQuantity: quantity is not positive.
            CartLineNotFound: the product is not in the cart.
        """
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1.")
        with self._sessions.locked():
            session = self._session(actor_id)
            line = session.find_line(product_id)
            if line is None:
                raise CartLineNotFound(f"Product {product_id} is not in the cart.")

            line.quantity -= quantity
            if line.quantity <= 0:
                session.cart.remove(line)
                remaining = 0
            else:
                remaining = line.quantity
            self._sessions.save(session)
        logger.info(
            "cart.line_decremented",
            actor_id=actor_id,
            product_id=product_id,
            remaining=remaining,
        )
        return remaining

    def remove_line(self, actor_id: str, product_id: str) -> None:
        """Drop a product from the cart entirely.

        Raises:
            CartLineNotFound: the product is not in the cart.
        """
        with self._sessions.locked():
            session = self._session(actor_id)
            line = session.find_line(product_id)
            if line is None:
                raise CartLineNotFound(f"Product {product_id} is not in the cart.")
            session.cart.remove(line)
            self._sessions.save(session)
        logger.info("cart.line_removed", actor_id=actor_id, product_id=product_id)

    def clear(self, actor_id: str) -> None:
        with self._sessions.locked():
            session = self._session(actor_id)
            session.cart.clear()
            self._sessions.save(session)
        logger.info("cart.cleared", actor_id=actor_id)

    def purge_product(self, product_id: str) -> int:
        """Remove a product from every cart.  Returns the number of carts touched.

        Holds the session store lock, never another actor's lock.
        """
        touched = 0
        with self._sessions.locked():
            for session in self._sessions.list():
                line = session.find_line(product_id)
                if line is not None:
                    session.cart.remove(line)
                    self._sessions.save(session)
                    touched += 1
        if touched:
            logger.info("cart.product_purged", product_id=product_id, carts=touched)
        return touched

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def lines(self, actor_id: str) -> List[CartLine]:
        with self._sessions.locked():
            session = self._sessions.get_by_id(actor_id)
            return list(session.cart) if session else []

    def total(self, actor_id: str) -> int:
        """Sum of ``unit_price * quantity``, recomputed on every call."""
        return sum(line.subtotal for line in self.lines(actor_id))

    def is_empty(self, actor_id: str) -> bool:
        return not self.lines(actor_id)
