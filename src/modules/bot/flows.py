"""Step handlers of the conversation state machine.

Every non-``IDLE`` step consumes exactly one inbound event.  Invalid
input re-prompts the same step without touching the session; a
completed flow performs its side effect and returns to ``IDLE``; the
cancel word returns to ``IDLE`` from any step.

Errors other than ``InvalidInput`` propagate to the dispatcher, which
turns them into notices.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict

import structlog

from modules.bot.inbound import ButtonPress, Event, PhotoMessage, text_of
from modules.conversations.constants import NUMERIC_STEPS, PRODUCT_FORM, SKIP_WORD, Step
from modules.conversations.exceptions import PhotoRequired
from modules.conversations.forms import (
    is_cancel,
    next_form_step,
    parse_amount,
    require_text,
)
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
from modules.core.formatting import format_money
from modules.orders.exceptions import EmptyCart
from modules.products.dtos import CreateProductDTO
from shared.domain.exceptions import InvalidInput

if TYPE_CHECKING:
    from modules.admins.services import AdminService
    from modules.bot.messenger import Keyboard, Notifier
    from modules.conversations.models import Scratch, Session
    from modules.orders.services import OrderService
    from modules.products.services import ProductService
    from modules.conversations.services import SessionService

logger = structlog.get_logger(__name__)

CANCEL_BUTTON = ("Cancel", "cancel")

PROMPTS: Dict[str, str] = {
    Step.ADD_PRODUCT_NAME: "Send the product name.",
    Step.ADD_PRODUCT_DESCRIPTION: "Send a short description, or - to leave it empty.",
    Step.ADD_PRODUCT_CATEGORY: "Send the category.",
    Step.ADD_PRODUCT_UNIT: "Send the unit label (e.g. pcs, month, account).",
    Step.ADD_PRODUCT_COST: "Send the cost price (whole number).",
    Step.ADD_PRODUCT_PRICE: "Send the sell price (whole number).",
    Step.ADD_PRODUCT_STOCK: "Send the initial stock (whole number).",
    Step.AWAITING_PAYMENT_PROOF: "Send a photo of your payment proof.",
    Step.AWAITING_BROADCAST_TEXT: "Send the message to broadcast to every user.",
    Step.AWAITING_LIVE_CHAT_TEXT: "Send your message for the admin.",
    Step.AWAITING_PRICE_EDIT: "Send the new sell price (whole number).",
    Step.AWAITING_STOCK_EDIT: "Send the new stock (whole number).",
    Step.AWAITING_REJECTION_NOTE: "Send the rejection reason, or - for none.",
    Step.AWAITING_FULFILLMENT_PAYLOAD: (
        "Send the text to deliver to the buyer (credentials, link...)."
    ),
}

ADMIN_STEPS = frozenset(
    {
        *PRODUCT_FORM,
        Step.AWAITING_BROADCAST_TEXT,
        Step.AWAITING_PRICE_EDIT,
        Step.AWAITING_STOCK_EDIT,
        Step.AWAITING_REJECTION_NOTE,
        Step.AWAITING_FULFILLMENT_PAYLOAD,
    }
)

_DRAFT_FIELDS = {
    Step.ADD_PRODUCT_NAME: "name",
    Step.ADD_PRODUCT_DESCRIPTION: "description",
    Step.ADD_PRODUCT_CATEGORY: "category",
    Step.ADD_PRODUCT_UNIT: "unit",
    Step.ADD_PRODUCT_COST: "price_cost",
    Step.ADD_PRODUCT_PRICE: "price_sell",
    Step.ADD_PRODUCT_STOCK: "stock",
}


class ConversationFlows:
    """Starts flows and feeds mid-flow input to the current step."""

    def __init__(
        self,
        sessions: SessionService,
        products: ProductService,
        orders: OrderService,
        admins: AdminService,
        notifier: Notifier,
        currency: str = "Rp",
        payment_instructions: str = "",
    ) -> None:
        self._sessions = sessions
        self._products = products
        self._orders = orders
        self._admins = admins
        self._notifier = notifier
        self._currency = currency
        self._payment_instructions = payment_instructions
        self._handlers: Dict[str, Callable[[Session, Event], None]] = {
            **{step: self._product_form for step in PRODUCT_FORM},
            Step.AWAITING_PAYMENT_PROOF: self._payment_proof,
            Step.AWAITING_BROADCAST_TEXT: self._broadcast,
            Step.AWAITING_LIVE_CHAT_TEXT: self._live_chat,
            Step.AWAITING_PRICE_EDIT: self._price_edit,
            Step.AWAITING_STOCK_EDIT: self._stock_edit,
            Step.AWAITING_REJECTION_NOTE: self._rejection_note,
            Step.AWAITING_FULFILLMENT_PAYLOAD: self._fulfillment_payload,
        }

    def money(self, amount: int) -> str:
        return format_money(amount, self._currency)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start(
        self, session: Session, step: str, scratch: Scratch, intro: str = ""
    ) -> None:
        """Move *session* into *step* and send its prompt."""
        self._sessions.start_flow(session, step, scratch)
        self._prompt(session, intro)

    def handle(self, session: Session, event: Event) -> None:
        """Feed one event to the session's current step."""
        if self._is_cancel(event):
            self.cancel(session)
            return

        step = session.step
        if step in ADMIN_STEPS:
            self._admins.require_privileged(session.actor_id, session.username)

        try:
            self._handlers[step](session, event)
        except InvalidInput as exc:
            logger.info(
                "flow.input_rejected",
                actor_id=session.actor_id,
                step=step,
                reason=str(exc),
            )
            self._prompt(session, str(exc))

    def cancel(self, session: Session) -> None:
        step = session.step
        self._drop_prompt(session)
        cart_cleared = self._sessions.cancel(session)
        text = "Cancelled."
        if step == Step.AWAITING_PAYMENT_PROOF and not cart_cleared:
            text += " Your cart is still there: /cart"
        self._notifier.notify(session.actor_id, text)

    def abort(self, session: Session) -> None:
        """Leave the current flow after an error, keeping the cart."""
        logger.info("flow.aborted", actor_id=session.actor_id, step=session.step)
        self._finish(session)

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _product_form(self, session: Session, event: Event) -> None:
        draft = session.expect_scratch(ProductDraft)
        step = session.step
        text = text_of(event)

        if step in NUMERIC_STEPS:
            value = parse_amount(text)
        elif step == Step.ADD_PRODUCT_DESCRIPTION and (text or "").strip() == SKIP_WORD:
            value = ""
        else:
            value = require_text(text)
        setattr(draft, _DRAFT_FIELDS[step], value)

        following = next_form_step(step)
        if following is not None:
            self._sessions.advance(session, following)
            self._prompt(session)
            return

        product = self._products.create_product(
            CreateProductDTO(
                name=draft.name,
                description=draft.description,
                category=draft.category,
                unit=draft.unit,
                price_cost=draft.price_cost or 0,
                price_sell=draft.price_sell or 0,
                stock=draft.stock or 0,
            )
        )
        self._finish(session)
        self._notifier.notify(
            session.actor_id,
            f"Product {product.code} {product.name} added: "
            f"{self.money(product.price_sell)}, stock {product.stock}.",
        )

    def _payment_proof(self, session: Session, event: Event) -> None:
        draft = session.expect_scratch(CheckoutDraft)
        if not isinstance(event, PhotoMessage):
            raise PhotoRequired("Payment proof must be a photo.")

        try:
            order = self._orders.checkout(
                session.actor_id,
                buyer_name=session.display_name or session.username,
                payment_proof=event.file_ref,
                idempotency_key=draft.nonce,
            )
        except EmptyCart:
            self._finish(session)
            self._notifier.notify(
                session.actor_id, "Your cart is empty, nothing to check out."
            )
            return

        self._finish(session)
        self._notifier.notify(
            session.actor_id,
            f"Thank you! Order {order.invoice} ({self.money(order.total_price)}) "
            "is waiting for payment verification.",
        )
        buyer = session.display_name or session.actor_id
        if session.username:
            buyer += f" (@{session.username})"
        self._admins.notify_admins_photo(
            event.file_ref,
            f"New order {order.invoice} from {buyer}\n"
            f"{order.items_summary}\n"
            f"Total: {self.money(order.total_price)}",
            buttons=[
                [
                    ("Accept", f"acc:{order.invoice}"),
                    ("Reject", f"rej:{order.invoice}"),
                ]
            ],
        )

    def _broadcast(self, session: Session, event: Event) -> None:
        session.expect_scratch(BroadcastDraft)
        text = require_text(text_of(event))
        delivered, failed = self._admins.broadcast(text, sender_id=session.actor_id)
        self._finish(session)
        self._notifier.notify(
            session.actor_id,
            f"Broadcast delivered to {delivered} user(s), {failed} failed.",
        )

    def _live_chat(self, session: Session, event: Event) -> None:
        session.expect_scratch(LiveChatDraft)
        sender = session.display_name or session.actor_id
        header = f"Message from {sender} (id {session.actor_id})"
        if isinstance(event, PhotoMessage):
            caption = f"{header}:\n{event.caption}" if event.caption else header
            self._admins.notify_admins_photo(event.file_ref, caption)
        else:
            text = require_text(text_of(event))
            self._admins.notify_admins(f"{header}:\n{text}", exclude=session.actor_id)
        self._finish(session)
        self._notifier.notify(
            session.actor_id, "Your message has been forwarded to the admin."
        )

    def _price_edit(self, session: Session, event: Event) -> None:
        edit = session.expect_scratch(PriceEdit)
        price = parse_amount(text_of(event))
        product = self._products.update_price(edit.product_id, price)
        self._finish(session)
        self._notifier.notify(
            session.actor_id,
            f"Price of {product.name} is now {self.money(product.price_sell)}.",
        )

    def _stock_edit(self, session: Session, event: Event) -> None:
        edit = session.expect_scratch(StockEdit)
        stock = parse_amount(text_of(event))
        product = self._products.update_stock(edit.product_id, stock)
        self._finish(session)
        self._notifier.notify(
            session.actor_id, f"Stock of {product.name} is now {product.stock}."
        )

    def _rejection_note(self, session: Session, event: Event) -> None:
        draft = session.expect_scratch(RejectionDraft)
        note = require_text(text_of(event))
        if note == SKIP_WORD:
            note = ""
        order = self._orders.reject(draft.invoice, session.actor_id, note)
        self._finish(session)
        self._notifier.notify(session.actor_id, f"Order {order.invoice} rejected.")

    def _fulfillment_payload(self, session: Session, event: Event) -> None:
        draft = session.expect_scratch(FulfillmentDraft)
        payload = require_text(text_of(event))
        order = self._orders.mark_sent(draft.invoice, session.actor_id, payload)
        self._finish(session)
        self._notifier.notify(
            session.actor_id, f"Order {order.invoice} delivered to the buyer."
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_cancel(self, event: Event) -> bool:
        if isinstance(event, ButtonPress):
            return event.data == CANCEL_BUTTON[1]
        return is_cancel(text_of(event))

    def _prompt(self, session: Session, notice: str = "") -> None:
        text = PROMPTS[session.step]
        if session.step == Step.AWAITING_PAYMENT_PROOF:
            draft = session.expect_scratch(CheckoutDraft)
            text = f"Total to pay: {self.money(draft.total)}\n{text}"
            if self._payment_instructions:
                text = f"{self._payment_instructions}\n\n{text}"
        if notice:
            text = f"{notice}\n{text}"
        buttons: Keyboard = [[CANCEL_BUTTON]]
        self._drop_prompt(session)
        message_ref = self._notifier.send(session.actor_id, text, buttons)
        self._sessions.remember_message(session, message_ref)

    def _drop_prompt(self, session: Session) -> None:
        if session.last_message_ref is not None:
            self._notifier.delete(session.actor_id, session.last_message_ref)
            session.last_message_ref = None

    def _finish(self, session: Session) -> None:
        self._drop_prompt(session)
        self._sessions.reset(session)
