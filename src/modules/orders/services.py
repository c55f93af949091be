"""Order service layer (Use Cases).

Orchestrates the order ledger: checkout from a cart, and the admin
verification state machine.

Business rules enforced:
- Checkout snapshots the cart; ``total_price`` is fixed at creation.
- Checkout is idempotent per checkout nonce: a repeated submission
  returns the existing order instead of creating a second one.
- Status transitions validated against ``VALID_TRANSITIONS``; a wrong
  predecessor raises ``OrderAlreadyProcessed`` without any mutation.
- Stock is decremented exactly once, at acceptance, clamped at zero.
  Rejection is only possible from ``PENDING``, before any decrement, so
  it never restores stock.
- Each transition is appended to the order history and sends exactly
  one notification to the buyer (plus one fulfillment prompt to the
  verifier on acceptance).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

import structlog

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderLineDTO
from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.exceptions import (
    EmptyCart,
    NotOrderOwner,
    OrderAlreadyProcessed,
    OrderNotFound,
)
from modules.orders.models import Order, OrderLine, StatusChange

if TYPE_CHECKING:
    from modules.carts.services import CartService
    from modules.orders.notifications import OrderNotifications
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    ``notifications`` may be ``None`` (e.g. in batch jobs), in which case
    transitions are silent.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        cart_service: CartService,
        notifications: Optional[OrderNotifications] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._carts = cart_service
        self._notifications = notifications

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def checkout(
        self,
        actor_id: str,
        buyer_name: str = "",
        payment_proof: str = "",
        idempotency_key: Optional[str] = None,
    ) -> Order:
        """Turn the actor's cart into a ``PENDING`` order and empty the cart.

        Raises:
            EmptyCart: the cart has no lines (and no order exists for the key).
        """
        log = logger.bind(actor_id=actor_id)

        if idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(idempotency_key)
            if existing:
                log.info(
                    "order.idempotency_hit",
                    invoice=existing.invoice,
                    key=idempotency_key,
                )
                return existing

        lines = self._carts.lines(actor_id)
        if not lines:
            raise EmptyCart("The cart is empty.")

        dto = CreateOrderDTO(
            buyer_id=actor_id,
            buyer_name=buyer_name,
            lines=[
                CreateOrderLineDTO(
                    product_id=line.product_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                )
                for line in lines
            ],
            payment_proof=payment_proof,
            idempotency_key=idempotency_key,
        )
        order = self.create_order(dto)
        self._carts.clear(actor_id)
        log.info("order.checkout_completed", invoice=order.invoice)
        return order

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Append a new ``PENDING`` order built from snapshotted lines.

        A DTO carrying an idempotency key already present in the ledger
        returns the existing order.
        """
        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                logger.info("order.idempotency_hit", invoice=existing.invoice)
                return existing

        order = Order(
            buyer_id=dto.buyer_id,
            buyer_name=dto.buyer_name,
            lines=tuple(
                OrderLine(
                    product_id=line.product_id,
                    name=line.name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                )
                for line in dto.lines
            ),
            total_price=dto.total_price,
            payment_proof=dto.payment_proof,
            notes=dto.notes,
            idempotency_key=dto.idempotency_key,
        )
        order.history.append(
            StatusChange(
                old_status=None,
                new_status=OrderStatus.PENDING,
                actor_id=dto.buyer_id,
                notes="Order created",
            )
        )
        order = self._order_repo.create(order)
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.invoice,
                buyer_id=order.buyer_id,
                total_price=order.total_price,
            )
        )
        return self._order_repo.save(order)

    def accept(self, invoice: str, verifier_id: str) -> Order:
        """Mark a ``PENDING`` order as paid and take its lines out of stock.

        Raises:
            OrderNotFound: unknown invoice.
            OrderAlreadyProcessed: the order is not ``PENDING``.
        """
        with self._order_repo.get_for_update(invoice) as order:
            if order is None:
                raise OrderNotFound(f"Order {invoice} not found.")
            self._transition(order, OrderStatus.PAID, verifier_id)
            order.verified_by = verifier_id
            order.verified_at = datetime.now(timezone.utc)

            for line in order.lines:
                remaining = self._product_repo.adjust_stock(
                    line.product_id, -line.quantity
                )
                logger.info(
                    "order.stock_decremented",
                    invoice=order.invoice,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    remaining=remaining,
                )
            self._order_repo.save(order)

        logger.info("order.accepted", invoice=order.invoice, verifier_id=verifier_id)
        if self._notifications:
            self._notifications.status_changed(order)
            self._notifications.fulfillment_prompt(order, verifier_id)
        return order

    def reject(self, invoice: str, verifier_id: str, note: str = "") -> Order:
        """Reject a ``PENDING`` order, e.g. for an invalid payment proof.

        Raises:
            OrderNotFound: unknown invoice.
            OrderAlreadyProcessed: the order is not ``PENDING``.
        """
        with self._order_repo.get_for_update(invoice) as order:
            if order is None:
                raise OrderNotFound(f"Order {invoice} not found.")
            self._transition(order, OrderStatus.REJECTED, verifier_id, notes=note)
            order.verified_by = verifier_id
            order.verified_at = datetime.now(timezone.utc)
            order.notes = note
            self._order_repo.save(order)

        logger.info("order.rejected", invoice=order.invoice, verifier_id=verifier_id)
        if self._notifications:
            self._notifications.status_changed(order, detail=note)
        return order

    def mark_sent(self, invoice: str, verifier_id: str, payload: str) -> Order:
        """Relay the fulfillment payload (credentials, link...) to the buyer.

        Raises:
            OrderNotFound: unknown invoice.
            OrderAlreadyProcessed: the order is not ``PAID``.
        """
        with self._order_repo.get_for_update(invoice) as order:
            if order is None:
                raise OrderNotFound(f"Order {invoice} not found.")
            self._transition(order, OrderStatus.SENT, verifier_id, notes="Payload sent")
            self._order_repo.save(order)

        logger.info("order.sent", invoice=order.invoice, verifier_id=verifier_id)
        if self._notifications:
            self._notifications.status_changed(order, detail=payload)
        return order

    def complete(self, invoice: str, actor_id: str, privileged: bool = False) -> Order:
        """Confirm receipt.  Allowed to the buyer or, with *privileged*, an admin.

        Raises:
            OrderNotFound: unknown invoice.
            NotOrderOwner: the actor is neither the buyer nor an admin.
            OrderAlreadyProcessed: the order is not ``PAID`` or ``SENT``.
        """
        with self._order_repo.get_for_update(invoice) as order:
            if order is None:
                raise OrderNotFound(f"Order {invoice} not found.")
            if not privileged and order.buyer_id != actor_id:
                raise NotOrderOwner(f"Order {invoice} belongs to another buyer.")
            self._transition(order, OrderStatus.COMPLETED, actor_id)
            self._order_repo.save(order)

        logger.info("order.completed", invoice=order.invoice, actor_id=actor_id)
        if self._notifications:
            self._notifications.status_changed(order)
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, invoice: str) -> Order:
        """Retrieve a single order by invoice.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(invoice)
        if not order:
            raise OrderNotFound(f"Order {invoice} not found.")
        return order

    def list_orders(self, buyer_id: Optional[str] = None) -> List[Order]:
        """Return the ledger in insertion order, optionally for one buyer."""
        if buyer_id is not None:
            return self._order_repo.list_by_buyer(buyer_id)
        return self._order_repo.list()

    def has_open_orders_for(self, product_id: str) -> bool:
        return self._order_repo.has_open_orders_for(product_id)

    def count(self) -> int:
        return self._order_repo.count()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(
        self, order: Order, new_status: str, actor_id: str, notes: str = ""
    ) -> None:
        log = logger.bind(
            invoice=order.invoice,
            current_status=order.status,
            new_status=new_status,
        )
        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise OrderAlreadyProcessed(
                f"Order {order.invoice} is already {order.status}."
            )
        old_status = order.status
        order.status = new_status
        order.history.append(
            StatusChange(
                old_status=old_status,
                new_status=new_status,
                actor_id=actor_id,
                notes=notes,
            )
        )
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.invoice,
                old_status=old_status,
                new_status=new_status,
                actor_id=actor_id,
            )
        )
