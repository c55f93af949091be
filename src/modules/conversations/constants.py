"""Conversation step constants.

Defines the per-actor session steps and the fixed order of the
add-product form.  ``IDLE`` is both the initial state and the resting
state between flows; every other step consumes exactly one input.
"""

from django.db import models


class Step(models.TextChoices):
    IDLE = "IDLE", "Idle"
    ADD_PRODUCT_NAME = "ADD_PRODUCT_NAME", "Product name"
    ADD_PRODUCT_DESCRIPTION = "ADD_PRODUCT_DESCRIPTION", "Product description"
    ADD_PRODUCT_CATEGORY = "ADD_PRODUCT_CATEGORY", "Product category"
    ADD_PRODUCT_UNIT = "ADD_PRODUCT_UNIT", "Product unit"
    ADD_PRODUCT_COST = "ADD_PRODUCT_COST", "Product cost price"
    ADD_PRODUCT_PRICE = "ADD_PRODUCT_PRICE", "Product sell price"
    ADD_PRODUCT_STOCK = "ADD_PRODUCT_STOCK", "Product stock"
    AWAITING_PAYMENT_PROOF = "AWAITING_PAYMENT_PROOF", "Payment proof"
    AWAITING_BROADCAST_TEXT = "AWAITING_BROADCAST_TEXT", "Broadcast text"
    AWAITING_LIVE_CHAT_TEXT = "AWAITING_LIVE_CHAT_TEXT", "Live chat text"
    AWAITING_PRICE_EDIT = "AWAITING_PRICE_EDIT", "New price"
    AWAITING_STOCK_EDIT = "AWAITING_STOCK_EDIT", "New stock"
    AWAITING_REJECTION_NOTE = "AWAITING_REJECTION_NOTE", "Rejection note"
    AWAITING_FULFILLMENT_PAYLOAD = "AWAITING_FULFILLMENT_PAYLOAD", "Fulfillment payload"


PRODUCT_FORM: tuple[str, ...] = (
    Step.ADD_PRODUCT_NAME,
    Step.ADD_PRODUCT_DESCRIPTION,
    Step.ADD_PRODUCT_CATEGORY,
    Step.ADD_PRODUCT_UNIT,
    Step.ADD_PRODUCT_COST,
    Step.ADD_PRODUCT_PRICE,
    Step.ADD_PRODUCT_STOCK,
)

NUMERIC_STEPS: set[str] = {
    Step.ADD_PRODUCT_COST,
    Step.ADD_PRODUCT_PRICE,
    Step.ADD_PRODUCT_STOCK,
    Step.AWAITING_PRICE_EDIT,
    Step.AWAITING_STOCK_EDIT,
}

CANCEL_WORDS: frozenset[str] = frozenset({"batal", "cancel"})

# Typed "-" on the optional description step.
SKIP_WORD = "-"
