"""Command and button routing for actors in ``IDLE``.

Commands are ``/name [args]`` texts; buttons carry ``action[:argument]``
callback data.  Anything here may start a flow through
``ConversationFlows.start``; nothing here consumes mid-flow input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

import structlog

from modules.bot.inbound import ButtonPress, Event, PhotoMessage
from modules.conversations.constants import Step
from modules.conversations.models import (
    BroadcastDraft,
    CheckoutDraft,
    FulfillmentDraft,
    LiveChatDraft,
    PriceEdit,
    ProductDraft,
    RejectionDraft,
    StockEdit,
)
from modules.orders.constants import OPEN_STATES, OrderStatus
from modules.orders.exceptions import OrderAlreadyProcessed
from modules.orders.reports import XLSX_MIME_TYPE, export_filename

if TYPE_CHECKING:
    from modules.admins.services import AdminService
    from modules.bot.flows import ConversationFlows
    from modules.bot.messenger import Keyboard, Notifier
    from modules.carts.services import CartService
    from modules.conversations.models import Session
    from modules.orders.models import Order
    from modules.orders.services import OrderService
    from modules.products.services import ProductService

logger = structlog.get_logger(__name__)

Handler = Callable[["Session", Event, str], None]

HELP_TEXT = (
    "/catalog - browse products\n"
    "/cart - view your cart\n"
    "/checkout - pay for your cart\n"
    "/orders - your orders\n"
    "/chat - talk to the admin"
)

ADMIN_HELP_TEXT = (
    "/addproduct - add a product\n"
    "/products - edit price, stock or remove products\n"
    "/orders - open orders awaiting action\n"
    "/export - download the order ledger\n"
    "/broadcast - message every user\n"
    "/addadmin <id>, /deladmin <id> - manage admins (owner only)"
)


def parse_command(text: str) -> Tuple[str, str]:
    """Split ``/cmd@botname args`` into ``("cmd", "args")``."""
    head, _, args = text.strip().partition(" ")
    name = head[1:].split("@", 1)[0].lower()
    return name, args.strip()


class CommandRouter:
    """Routes commands and button presses of idle actors."""

    def __init__(
        self,
        flows: ConversationFlows,
        products: ProductService,
        carts: CartService,
        orders: OrderService,
        admins: AdminService,
        notifier: Notifier,
    ) -> None:
        self._flows = flows
        self._products = products
        self._carts = carts
        self._orders = orders
        self._admins = admins
        self._notifier = notifier

        self._commands: Dict[str, Handler] = {
            "start": self._start,
            "help": self._start,
            "catalog": self._catalog,
            "cart": self._cart,
            "checkout": self._checkout,
            "orders": self._orders_list,
            "chat": self._chat,
            "admin": self._admin_menu,
            "addproduct": self._add_product,
            "products": self._products_list,
            "export": self._export,
            "broadcast": self._broadcast,
            "addadmin": self._grant,
            "deladmin": self._revoke,
        }
        self._buttons: Dict[str, Handler] = {
            "catalog": self._catalog,
            "cart": self._cart,
            "checkout": self._checkout,
            "add": self._add,
            "inc": self._increment,
            "dec": self._decrement,
            "del": self._remove_line,
            "clear": self._clear,
            "done": self._complete,
            "price": self._edit_price,
            "stock": self._edit_stock,
            "remove": self._remove_product,
            "acc": self._accept,
            "rej": self._reject,
            "ful": self._fulfil,
            "skip": self._skip_fulfilment,
        }

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def route(self, session: Session, event: Event) -> None:
        if isinstance(event, ButtonPress):
            action, _, argument = event.data.partition(":")
            handler = self._buttons.get(action)
            if handler is None:
                logger.info("bot.unknown_button", data=event.data)
                return
            handler(session, event, argument)
            return

        if isinstance(event, PhotoMessage):
            self._say(session, "No checkout in progress. Use /checkout first.")
            return

        text = event.text.strip()
        if not text.startswith("/"):
            self._say(session, "Send /catalog to browse products or /start for help.")
            return

        name, args = parse_command(text)
        handler = self._commands.get(name)
        if handler is None:
            self._say(session, "Unknown command. Send /start for help.")
            return
        logger.info("bot.command", command=name, actor_id=session.actor_id)
        handler(session, event, args)

    # ------------------------------------------------------------------
    # Buyer commands
    # ------------------------------------------------------------------

    def _start(self, session: Session, event: Event, args: str) -> None:
        name = session.display_name or "there"
        text = f"Hello {name}! Welcome to the shop.\n\n{HELP_TEXT}"
        if self._is_admin(session):
            text += "\n\nYou are an admin: /admin"
        self._say(
            session,
            text,
            [[("Catalog", "catalog"), ("Cart", "cart")]],
        )

    def _catalog(self, session: Session, event: Event, args: str) -> None:
        products = self._products.list_products()
        if not products:
            self._say(session, "The catalog is empty.")
            return
        lines = []
        buttons: Keyboard = []
        for product in products:
            stock = f"stock {product.stock}" if product.in_stock else "sold out"
            lines.append(
                f"{product.code} {product.name} - "
                f"{self._flows.money(product.price_sell)} ({stock})"
            )
            if product.in_stock:
                buttons.append([(f"Add {product.name}", f"add:{product.id}")])
        buttons.append([("View cart", "cart")])
        self._say(session, "Catalog\n\n" + "\n".join(lines), buttons)

    def _cart(self, session: Session, event: Event, args: str) -> None:
        text, buttons = self._render_cart(session.actor_id)
        if isinstance(event, ButtonPress) and event.message_ref is not None:
            self._notifier.edit(session.actor_id, event.message_ref, text, buttons)
        else:
            self._say(session, text, buttons)

    def _checkout(self, session: Session, event: Event, args: str) -> None:
        if self._carts.is_empty(session.actor_id):
            self._say(session, "Your cart is empty. Send /catalog to add products.")
            return
        self._flows.start(
            session,
            Step.AWAITING_PAYMENT_PROOF,
            CheckoutDraft(total=self._carts.total(session.actor_id)),
        )

    def _orders_list(self, session: Session, event: Event, args: str) -> None:
        if self._is_admin(session):
            self._open_orders(session)
            return
        orders = self._orders.list_orders(buyer_id=session.actor_id)
        if not orders:
            self._say(session, "You have no orders yet.")
            return
        lines = []
        buttons: Keyboard = []
        for order in orders:
            lines.append(
                f"{order.invoice} - {self._flows.money(order.total_price)} "
                f"- {order.status}"
            )
            if order.can_transition_to(OrderStatus.COMPLETED):
                buttons.append(
                    [(f"Confirm receipt {order.invoice}", f"done:{order.invoice}")]
                )
        self._say(session, "Your orders\n\n" + "\n".join(lines), buttons or None)

    def _chat(self, session: Session, event: Event, args: str) -> None:
        self._flows.start(session, Step.AWAITING_LIVE_CHAT_TEXT, LiveChatDraft())

    # ------------------------------------------------------------------
    # Cart buttons
    # ------------------------------------------------------------------

    def _add(self, session: Session, event: Event, product_id: str) -> None:
        line = self._carts.add_line(session.actor_id, product_id)
        self._say(
            session,
            f"{line.name} added to your cart (quantity {line.quantity}).",
            [[("View cart", "cart"), ("Checkout", "checkout")]],
        )

    def _increment(self, session: Session, event: Event, product_id: str) -> None:
        self._carts.add_line(session.actor_id, product_id)
        self._cart(session, event, "")

    def _decrement(self, session: Session, event: Event, product_id: str) -> None:
        self._carts.decrement_line(session.actor_id, product_id)
        self._cart(session, event, "")

    def _remove_line(self, session: Session, event: Event, product_id: str) -> None:
        self._carts.remove_line(session.actor_id, product_id)
        self._cart(session, event, "")

    def _clear(self, session: Session, event: Event, args: str) -> None:
        self._carts.clear(session.actor_id)
        self._cart(session, event, "")

    def _complete(self, session: Session, event: Event, invoice: str) -> None:
        order = self._orders.complete(
            invoice, session.actor_id, privileged=self._is_admin(session)
        )
        if order.buyer_id != session.actor_id:
            self._say(session, f"Order {order.invoice} marked as completed.")

    # ------------------------------------------------------------------
    # Admin commands
    # ------------------------------------------------------------------

    def _admin_menu(self, session: Session, event: Event, args: str) -> None:
        self._require_admin(session)
        self._say(session, "Admin commands\n\n" + ADMIN_HELP_TEXT)

    def _add_product(self, session: Session, event: Event, args: str) -> None:
        self._require_admin(session)
        self._flows.start(session, Step.ADD_PRODUCT_NAME, ProductDraft())

    def _products_list(self, session: Session, event: Event, args: str) -> None:
        self._require_admin(session)
        products = self._products.list_products()
        if not products:
            self._say(session, "No products yet. Use /addproduct.")
            return
        lines = []
        buttons: Keyboard = []
        for product in products:
            lines.append(
                f"{product.code} {product.name} - cost "
                f"{self._flows.money(product.price_cost)}, sell "
                f"{self._flows.money(product.price_sell)}, stock {product.stock}"
            )
            buttons.append(
                [
                    (f"Price {product.code}", f"price:{product.id}"),
                    (f"Stock {product.code}", f"stock:{product.id}"),
                    (f"Remove {product.code}", f"remove:{product.id}"),
                ]
            )
        self._say(session, "Products\n\n" + "\n".join(lines), buttons)

    def _export(self, session: Session, event: Event, args: str) -> None:
        self._require_admin(session)
        content = self._admins.export_report()
        self._notifier.send_document(
            session.actor_id,
            content,
            export_filename(datetime.now(timezone.utc)),
            XLSX_MIME_TYPE,
            caption=f"{self._orders.count()} order(s)",
        )

    def _broadcast(self, session: Session, event: Event, args: str) -> None:
        self._require_admin(session)
        self._flows.start(session, Step.AWAITING_BROADCAST_TEXT, BroadcastDraft())

    def _grant(self, session: Session, event: Event, target_id: str) -> None:
        added = self._admins.grant(session.actor_id, session.username, target_id)
        if added:
            self._say(session, f"{target_id} is now an admin.")
        else:
            self._say(session, f"{target_id} was already an admin.")

    def _revoke(self, session: Session, event: Event, target_id: str) -> None:
        removed = self._admins.revoke(session.actor_id, session.username, target_id)
        if removed:
            self._say(session, f"{target_id} is no longer an admin.")
        else:
            self._say(session, f"{target_id} was not an admin.")

    def _open_orders(self, session: Session) -> None:
        orders = [o for o in self._orders.list_orders() if o.status in OPEN_STATES]
        if not orders:
            self._say(session, "No open orders.")
            return
        lines = []
        buttons: Keyboard = []
        for order in orders:
            lines.append(
                f"{order.invoice} - {order.buyer_name or order.buyer_id} - "
                f"{self._flows.money(order.total_price)} - {order.status}"
            )
            buttons.append(self._order_actions(order))
        self._say(session, "Open orders\n\n" + "\n".join(lines), buttons)

    @staticmethod
    def _order_actions(order: Order) -> List[Tuple[str, str]]:
        invoice = order.invoice
        if order.status == OrderStatus.PENDING:
            return [
                (f"Accept {invoice}", f"acc:{invoice}"),
                ("Reject", f"rej:{invoice}"),
            ]
        if order.status == OrderStatus.PAID:
            return [
                (f"Deliver {invoice}", f"ful:{invoice}"),
                ("Complete", f"done:{invoice}"),
            ]
        return [(f"Complete {invoice}", f"done:{invoice}")]

    # ------------------------------------------------------------------
    # Admin buttons
    # ------------------------------------------------------------------

    def _edit_price(self, session: Session, event: Event, product_id: str) -> None:
        self._require_admin(session)
        product = self._products.get_product(product_id)
        self._flows.start(
            session,
            Step.AWAITING_PRICE_EDIT,
            PriceEdit(product_id=product.id),
            intro=f"{product.name}: current price "
            f"{self._flows.money(product.price_sell)}.",
        )

    def _edit_stock(self, session: Session, event: Event, product_id: str) -> None:
        self._require_admin(session)
        product = self._products.get_product(product_id)
        self._flows.start(
            session,
            Step.AWAITING_STOCK_EDIT,
            StockEdit(product_id=product.id),
            intro=f"{product.name}: current stock {product.stock}.",
        )

    def _remove_product(self, session: Session, event: Event, product_id: str) -> None:
        self._require_admin(session)
        product = self._admins.delete_product(product_id)
        self._say(session, f"{product.code} {product.name} removed.")

    def _accept(self, session: Session, event: Event, invoice: str) -> None:
        self._require_admin(session)
        order = self._orders.accept(invoice, session.actor_id)
        self._admins.notify_admins(
            f"{order.invoice} accepted by {session.display_name or session.actor_id}.",
            exclude=session.actor_id,
        )

    def _reject(self, session: Session, event: Event, invoice: str) -> None:
        self._require_admin(session)
        order = self._expect_transition(invoice, OrderStatus.REJECTED)
        self._flows.start(
            session,
            Step.AWAITING_REJECTION_NOTE,
            RejectionDraft(invoice=order.invoice),
            intro=f"Rejecting {order.invoice}.",
        )

    def _fulfil(self, session: Session, event: Event, invoice: str) -> None:
        self._require_admin(session)
        order = self._expect_transition(invoice, OrderStatus.SENT)
        self._flows.start(
            session,
            Step.AWAITING_FULFILLMENT_PAYLOAD,
            FulfillmentDraft(invoice=order.invoice),
            intro=f"Delivering {order.invoice} to "
            f"{order.buyer_name or order.buyer_id}.",
        )

    def _skip_fulfilment(self, session: Session, event: Event, invoice: str) -> None:
        self._require_admin(session)
        self._say(session, f"OK. Deliver {invoice} later from /orders.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _expect_transition(self, invoice: str, status: str) -> Order:
        order = self._orders.get_order(invoice)
        if not order.can_transition_to(status):
            raise OrderAlreadyProcessed(
                f"Order {order.invoice} is already {order.status}."
            )
        return order

    def _is_admin(self, session: Session) -> bool:
        return self._admins.is_privileged(session.actor_id, session.username)

    def _require_admin(self, session: Session) -> None:
        self._admins.require_privileged(session.actor_id, session.username)

    def _render_cart(self, actor_id: str) -> Tuple[str, Optional[Keyboard]]:
        lines = self._carts.lines(actor_id)
        if not lines:
            return "Your cart is empty.", [[("Catalog", "catalog")]]
        rows = [
            f"{line.name} x{line.quantity} = {self._flows.money(line.subtotal)}"
            for line in lines
        ]
        rows.append(f"\nTotal: {self._flows.money(self._carts.total(actor_id))}")
        buttons: Keyboard = [
            [
                ("-", f"dec:{line.product_id}"),
                (f"{line.name} x{line.quantity}", "cart"),
                ("+", f"inc:{line.product_id}"),
                ("x", f"del:{line.product_id}"),
            ]
            for line in lines
        ]
        buttons.append([("Clear", "clear"), ("Checkout", "checkout")])
        return "Your cart\n\n" + "\n".join(rows), buttons

    def _say(
        self, session: Session, text: str, buttons: Optional[Keyboard] = None
    ) -> None:
        self._notifier.send(session.actor_id, text, buttons)
