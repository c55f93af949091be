"""Per-actor conversation session and the typed scratch of each flow.

The scratch of a session is a tagged union: the current ``step``
selects which record type is legal (``STEP_SCRATCH``), and
``Session.expect_scratch`` refuses to hand a step the record written by
another flow.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type, TypeVar, Union

from modules.carts.models import CartLine
from modules.conversations.constants import PRODUCT_FORM, Step
from modules.conversations.exceptions import ScratchMismatch


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Scratch records
# ---------------------------------------------------------------------------


@dataclass
class ProductDraft:
    """Accumulator of the add-product form."""

    name: str = ""
    description: str = ""
    category: str = ""
    unit: str = ""
    price_cost: Optional[int] = None
    price_sell: Optional[int] = None
    stock: Optional[int] = None


@dataclass
class CheckoutDraft:
    """Open checkout.  ``nonce`` becomes the order's idempotency key."""

    nonce: str = field(default_factory=lambda: secrets.token_hex(8))
    total: int = 0


@dataclass
class BroadcastDraft:
    pass


@dataclass
class LiveChatDraft:
    pass


@dataclass
class PriceEdit:
    product_id: str


@dataclass
class StockEdit:
    product_id: str


@dataclass
class RejectionDraft:
    invoice: str


@dataclass
class FulfillmentDraft:
    invoice: str


Scratch = Union[
    ProductDraft,
    CheckoutDraft,
    BroadcastDraft,
    LiveChatDraft,
    PriceEdit,
    StockEdit,
    RejectionDraft,
    FulfillmentDraft,
]

STEP_SCRATCH: Dict[str, Type] = {
    **{step: ProductDraft for step in PRODUCT_FORM},
    Step.AWAITING_PAYMENT_PROOF: CheckoutDraft,
    Step.AWAITING_BROADCAST_TEXT: BroadcastDraft,
    Step.AWAITING_LIVE_CHAT_TEXT: LiveChatDraft,
    Step.AWAITING_PRICE_EDIT: PriceEdit,
    Step.AWAITING_STOCK_EDIT: StockEdit,
    Step.AWAITING_REJECTION_NOTE: RejectionDraft,
    Step.AWAITING_FULFILLMENT_PAYLOAD: FulfillmentDraft,
}

S = TypeVar("S")


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass
class Session:
    """Conversation state of one actor (chat).

    Created lazily on first contact.  Only the handler currently holding
    the actor's lock may mutate it.
    """

    actor_id: str
    step: str = Step.IDLE
    scratch: Optional[Scratch] = None
    cart: List[CartLine] = field(default_factory=list)
    display_name: str = ""
    username: str = ""
    last_message_ref: Optional[int] = None
    last_seen_at: datetime = field(default_factory=_now)

    @property
    def is_idle(self) -> bool:
        return self.step == Step.IDLE

    def expect_scratch(self, kind: Type[S]) -> S:
        """Return the scratch if it is a *kind* record, else raise."""
        if not isinstance(self.scratch, kind):
            raise ScratchMismatch(
                f"Step {self.step} expected {kind.__name__}, "
                f"found {type(self.scratch).__name__}."
            )
        return self.scratch

    def find_line(self, product_id: str) -> Optional[CartLine]:
        for line in self.cart:
            if line.product_id == product_id:
                return line
        return None

    def __str__(self) -> str:
        return f"{self.actor_id} ({self.step})"
