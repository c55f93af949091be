"""Admin journeys driven through the dispatcher.

Covers the capability gate, the add-product form, catalog edits, the
order verification buttons, broadcast, export and admin-set management.
"""

from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import load_workbook

from modules.conversations.constants import PRODUCT_FORM, Step
from modules.conversations.models import (
    STEP_SCRATCH,
    FulfillmentDraft,
    PriceEdit,
    RejectionDraft,
    StockEdit,
)
from modules.orders.constants import OrderStatus
from modules.orders.reports import XLSX_MIME_TYPE

pytestmark = pytest.mark.unit

OWNER = "1000"
ADMIN = "2000"
BUYER = "3000"


@pytest.fixture()
def netflix(make_product):
    return make_product(name="Netflix", price_sell=10000, stock=5)


@pytest.fixture()
def pending_order(chat, bot, netflix):
    chat.press(BUYER, f"add:{netflix.id}")
    chat.press(BUYER, f"add:{netflix.id}")
    chat.press(BUYER, "checkout")
    chat.photo(BUYER, file_ref="proof-1")
    [order] = bot.orders.list_orders()
    return order


# ---------------------------------------------------------------------------
# Capability gate
# ---------------------------------------------------------------------------


class TestAccess:
    @pytest.mark.parametrize("command", ["/admin", "/addproduct", "/export"])
    def test_buyer_is_denied(self, chat, command):
        chat.text(BUYER, command)
        assert chat.last_text(BUYER).startswith("Access denied.")
        assert chat.session(BUYER).step == Step.IDLE

    def test_buyer_cannot_press_admin_buttons(self, chat, bot, pending_order):
        chat.press(BUYER, f"acc:{pending_order.invoice}")
        assert chat.last_text(BUYER).startswith("Access denied.")
        assert bot.orders.get_order(pending_order.invoice).status == OrderStatus.PENDING

    def test_owner_recognised_by_username(self, chat):
        chat.text("5555", "/admin", username="ShopOwner")
        assert chat.last_text("5555").startswith("Admin commands")

    def test_configured_admin(self, chat):
        chat.text(ADMIN, "/admin")
        assert "/addproduct" in chat.last_text(ADMIN)


# ---------------------------------------------------------------------------
# Add-product form
# ---------------------------------------------------------------------------


class TestAddProduct:
    def test_full_form(self, chat, bot):
        chat.text(ADMIN, "/addproduct")
        assert chat.session(ADMIN).step == Step.ADD_PRODUCT_NAME

        for answer in ("Netflix Premium", "-", "Streaming", "account"):
            chat.text(ADMIN, answer)
        assert chat.session(ADMIN).step == Step.ADD_PRODUCT_COST

        chat.text(ADMIN, "abc")
        assert chat.session(ADMIN).step == Step.ADD_PRODUCT_COST
        assert "not a non-negative whole number" in chat.last_text(ADMIN)

        for answer in ("10.000", "15000", "5"):
            chat.text(ADMIN, answer)

        session = chat.session(ADMIN)
        assert session.step == Step.IDLE
        assert session.scratch is None
        [product] = bot.products.list_products()
        assert product.code == "P001"
        assert product.name == "Netflix Premium"
        assert product.description == ""
        assert product.category == "Streaming"
        assert product.unit == "account"
        assert product.price_cost == 10000
        assert product.price_sell == 15000
        assert product.stock == 5
        assert chat.last_text(ADMIN) == (
            "Product P001 Netflix Premium added: Rp15.000, stock 5."
        )

    @pytest.mark.parametrize("answer", ["²", "9" * 5000, "1.5", "12,50"])
    def test_bad_amount_reprompts_and_keeps_form(self, chat, answer):
        chat.text(ADMIN, "/addproduct")
        for text in ("Netflix Premium", "-", "Streaming", "account"):
            chat.text(ADMIN, text)
        before = chat.session(ADMIN).scratch

        result = chat.text(ADMIN, answer)

        assert result.ok
        session = chat.session(ADMIN)
        assert session.step == Step.ADD_PRODUCT_COST
        assert session.scratch == before
        assert "not a non-negative whole number" in chat.last_text(ADMIN)

    def test_empty_name_reprompts(self, chat):
        chat.text(ADMIN, "/addproduct")
        chat.text(ADMIN, "  ")
        assert chat.session(ADMIN).step == Step.ADD_PRODUCT_NAME
        assert chat.last_text(ADMIN).startswith("Please send a non-empty text.")

    def test_each_step_replaces_previous_prompt(self, chat, messenger):
        chat.text(ADMIN, "/addproduct")
        first_prompt = chat.session(ADMIN).last_message_ref
        chat.text(ADMIN, "Netflix")

        deleted = messenger.sent_to(ADMIN, ["delete_message"])
        assert [c.message_ref for c in deleted] == [first_prompt]


def _scratch_for(step, product_id="p", invoice="INV-1"):
    kind = STEP_SCRATCH[step]
    if kind in (PriceEdit, StockEdit):
        return kind(product_id=product_id)
    if kind in (RejectionDraft, FulfillmentDraft):
        return kind(invoice=invoice)
    return kind()


@pytest.mark.parametrize("step", [s for s in Step if s != Step.IDLE])
def test_cancel_from_every_step(chat, bot, step):
    session = bot.sessions.resolve(ADMIN)
    bot.sessions.start_flow(session, step, _scratch_for(step))

    chat.text(ADMIN, "batal")

    session = chat.session(ADMIN)
    assert session.step == Step.IDLE
    assert session.scratch is None
    assert chat.last_text(ADMIN).startswith("Cancelled.")


def test_product_form_order():
    assert PRODUCT_FORM[0] == Step.ADD_PRODUCT_NAME
    assert PRODUCT_FORM[-1] == Step.ADD_PRODUCT_STOCK


# ---------------------------------------------------------------------------
# Catalog edits
# ---------------------------------------------------------------------------


class TestCatalogEdits:
    def test_products_listing(self, chat, messenger, netflix):
        chat.text(ADMIN, "/products")
        call = messenger.last_for(ADMIN)
        assert "P001 Netflix - cost Rp10.000, sell Rp10.000, stock 5" in call.text
        assert call.button_data == [
            f"price:{netflix.id}",
            f"stock:{netflix.id}",
            f"remove:{netflix.id}",
        ]

    def test_price_edit(self, chat, bot, netflix):
        chat.press(ADMIN, f"price:{netflix.id}")
        assert chat.session(ADMIN).step == Step.AWAITING_PRICE_EDIT
        assert "current price Rp10.000" in chat.last_text(ADMIN)

        chat.text(ADMIN, "20.000")

        assert bot.products.get_product(netflix.id).price_sell == 20000
        assert chat.session(ADMIN).step == Step.IDLE
        assert chat.last_text(ADMIN) == "Price of Netflix is now Rp20.000."

    def test_price_edit_keeps_cart_snapshot(self, chat, bot, netflix):
        chat.press(BUYER, f"add:{netflix.id}")
        chat.press(ADMIN, f"price:{netflix.id}")
        chat.text(ADMIN, "20000")
        assert bot.carts.total(BUYER) == 10000

    def test_stock_edit_rejects_negative(self, chat, bot, netflix):
        chat.press(ADMIN, f"stock:{netflix.id}")
        chat.text(ADMIN, "-3")
        assert chat.session(ADMIN).step == Step.AWAITING_STOCK_EDIT

        chat.text(ADMIN, "7")
        assert bot.products.get_product(netflix.id).stock == 7
        assert chat.last_text(ADMIN) == "Stock of Netflix is now 7."

    def test_stock_edit_rejects_decimal(self, chat, bot, netflix):
        chat.press(ADMIN, f"stock:{netflix.id}")
        chat.text(ADMIN, "1.5")

        assert chat.session(ADMIN).step == Step.AWAITING_STOCK_EDIT
        assert bot.products.get_product(netflix.id).stock == 5
        assert "not a non-negative whole number" in chat.last_text(ADMIN)

    def test_product_removed_mid_edit_aborts_flow(self, chat, bot, netflix):
        chat.press(ADMIN, f"price:{netflix.id}")
        bot.products.delete_product(netflix.id)

        chat.text(ADMIN, "100")

        assert chat.session(ADMIN).step == Step.IDLE
        assert chat.last_text(ADMIN) == f"Product {netflix.id} not found."

    def test_remove_product_purges_carts(self, chat, bot, netflix):
        chat.press(BUYER, f"add:{netflix.id}")
        chat.press(ADMIN, f"remove:{netflix.id}")

        assert bot.products.count() == 0
        assert bot.carts.is_empty(BUYER)
        assert chat.last_text(ADMIN) == "P001 Netflix removed."

    def test_remove_product_with_open_order(self, chat, bot, netflix, pending_order):
        chat.press(ADMIN, f"remove:{netflix.id}")

        assert bot.products.count() == 1
        assert chat.last_text(ADMIN) == (
            "Netflix is part of an order that is still open."
        )

    def test_unknown_product_button(self, chat):
        chat.press(ADMIN, "price:missing")
        assert chat.last_text(ADMIN) == "Product missing not found."
        assert chat.session(ADMIN).step == Step.IDLE


# ---------------------------------------------------------------------------
# Order verification
# ---------------------------------------------------------------------------


class TestVerification:
    def test_open_orders_listing(self, chat, messenger, pending_order):
        chat.text(ADMIN, "/orders")
        call = messenger.last_for(ADMIN)
        assert pending_order.invoice in call.text
        assert call.button_data == [
            f"acc:{pending_order.invoice}",
            f"rej:{pending_order.invoice}",
        ]

    def test_no_open_orders(self, chat):
        chat.text(ADMIN, "/orders")
        assert chat.last_text(ADMIN) == "No open orders."

    def test_accept(self, chat, bot, messenger, netflix, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"acc:{invoice}", name="Rina")

        order = bot.orders.get_order(invoice)
        assert order.status == OrderStatus.PAID
        assert order.verified_by == ADMIN
        assert bot.products.get_product(netflix.id).stock == 3

        assert "has been verified" in chat.last_text(BUYER)
        prompt = messenger.last_for(ADMIN)
        assert prompt.button_data == [f"ful:{invoice}", f"skip:{invoice}"]
        assert chat.last_text(OWNER) == f"{invoice} accepted by Rina."

    def test_accept_twice(self, chat, bot, netflix, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"acc:{invoice}")
        chat.press(OWNER, f"acc:{invoice}")

        assert chat.last_text(OWNER) == f"Order {invoice} is already PAID."
        assert bot.products.get_product(netflix.id).stock == 3

    def test_reject_with_note(self, chat, bot, netflix, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"rej:{invoice}")
        assert chat.session(ADMIN).step == Step.AWAITING_REJECTION_NOTE

        chat.text(ADMIN, "Blurry proof")

        order = bot.orders.get_order(invoice)
        assert order.status == OrderStatus.REJECTED
        assert order.notes == "Blurry proof"
        assert bot.products.get_product(netflix.id).stock == 5
        assert "Reason: Blurry proof" in chat.last_text(BUYER)
        assert chat.last_text(ADMIN) == f"Order {invoice} rejected."

    def test_reject_without_note(self, chat, bot, pending_order):
        chat.press(ADMIN, f"rej:{pending_order.invoice}")
        chat.text(ADMIN, "-")
        order = bot.orders.get_order(pending_order.invoice)
        assert order.status == OrderStatus.REJECTED
        assert order.notes == ""

    def test_reject_paid_order(self, chat, bot, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"acc:{invoice}")
        chat.press(OWNER, f"rej:{invoice}")

        assert chat.session(OWNER).step == Step.IDLE
        assert chat.last_text(OWNER) == f"Order {invoice} is already PAID."
        assert bot.orders.get_order(invoice).status == OrderStatus.PAID

    def test_fulfil_then_buyer_confirms(self, chat, bot, messenger, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"acc:{invoice}")
        chat.press(ADMIN, f"ful:{invoice}")
        assert chat.session(ADMIN).step == Step.AWAITING_FULFILLMENT_PAYLOAD

        chat.text(ADMIN, "user: buyer@mail.test pass: s3cret")

        assert bot.orders.get_order(invoice).status == OrderStatus.SENT
        delivery = messenger.last_for(BUYER)
        assert "user: buyer@mail.test pass: s3cret" in delivery.text
        assert delivery.button_data == [f"done:{invoice}"]

        chat.press(BUYER, f"done:{invoice}")
        assert bot.orders.get_order(invoice).status == OrderStatus.COMPLETED

    def test_fulfil_pending_order(self, chat, pending_order):
        chat.press(ADMIN, f"ful:{pending_order.invoice}")
        assert chat.session(ADMIN).step == Step.IDLE
        assert "already PENDING" in chat.last_text(ADMIN)

    def test_skip_fulfilment(self, chat, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"acc:{invoice}")
        chat.press(ADMIN, f"skip:{invoice}")
        assert chat.last_text(ADMIN) == f"OK. Deliver {invoice} later from /orders."

    def test_admin_completes_for_buyer(self, chat, bot, pending_order):
        invoice = pending_order.invoice
        chat.press(ADMIN, f"acc:{invoice}")
        chat.press(ADMIN, f"done:{invoice}")

        assert bot.orders.get_order(invoice).status == OrderStatus.COMPLETED
        assert chat.last_text(ADMIN) == f"Order {invoice} marked as completed."

    def test_unknown_invoice(self, chat):
        chat.press(ADMIN, "acc:INV-00000000-XXXXXX")
        assert chat.last_text(ADMIN) == "Order INV-00000000-XXXXXX not found."


# ---------------------------------------------------------------------------
# Broadcast, export, admin set
# ---------------------------------------------------------------------------


class TestBroadcast:
    def test_delivers_to_known_users(self, chat, messenger):
        chat.text(BUYER, "/start")
        chat.text("4000", "/start")
        messenger.blocked.add("4000")

        chat.text(ADMIN, "/broadcast")
        chat.text(ADMIN, "Promo: 20% off today!")

        assert messenger.last_for(BUYER).text == "Promo: 20% off today!"
        assert chat.last_text(ADMIN) == "Broadcast delivered to 1 user(s), 1 failed."
        assert chat.session(ADMIN).step == Step.IDLE


class TestExport:
    def test_sends_xlsx_document(self, chat, messenger, pending_order):
        chat.text(ADMIN, "/export")

        [document] = messenger.sent_to(ADMIN, ["send_document"])
        assert document.mime_type == XLSX_MIME_TYPE
        assert document.filename.endswith(".xlsx")
        assert document.content[:2] == b"PK"
        assert document.text == "1 order(s)"

        sheet = load_workbook(BytesIO(document.content)).active
        [_header, row] = list(sheet.iter_rows(values_only=True))
        assert row[0] == pending_order.invoice
        assert row[9] == "memory://files/proof-1"


class TestAdminSet:
    def test_owner_grants_and_revokes(self, chat, bot):
        chat.text(OWNER, "/addadmin 4000")
        assert chat.last_text(OWNER) == "4000 is now an admin."
        assert bot.admins.is_privileged("4000")

        chat.text(OWNER, "/addadmin 4000")
        assert chat.last_text(OWNER) == "4000 was already an admin."

        chat.text(OWNER, "/deladmin 4000")
        assert chat.last_text(OWNER) == "4000 is no longer an admin."
        assert not bot.admins.is_privileged("4000")

    def test_admin_cannot_grant(self, chat, bot):
        chat.text(ADMIN, "/addadmin 4000")
        assert chat.last_text(ADMIN).startswith("Access denied.")
        assert not bot.admins.is_privileged("4000")

    def test_invalid_target(self, chat):
        chat.text(OWNER, "/addadmin someone")
        assert chat.last_text(OWNER) == "'someone' is not a chat id."

    def test_revoked_admin_mid_flow(self, chat, bot):
        chat.text(ADMIN, "/addproduct")
        chat.text(OWNER, "/deladmin 2000")

        chat.text(ADMIN, "Netflix")

        assert chat.session(ADMIN).step == Step.IDLE
        assert chat.last_text(ADMIN).startswith("Access denied.")
        assert bot.products.count() == 0
