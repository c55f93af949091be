import itertools

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.bot.container import BotSettings, build_bot, reset_bot
from modules.bot.inbound import ButtonPress, PhotoMessage, TextMessage
from modules.bot.messenger import InMemoryMessenger
from modules.products.dtos import CreateProductDTO

OWNER_ID = "1000"
ADMIN_ID = "2000"
BUYER_ID = "3000"


@pytest.fixture(autouse=True)
def _fresh_state():
    """Every test starts with an empty cache and no process-wide bot."""
    cache.clear()
    reset_bot()
    yield
    reset_bot()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Bot
# ---------------------------------------------------------------------------


@pytest.fixture()
def bot_settings():
    return BotSettings(
        owner_id=OWNER_ID,
        owner_username="shopowner",
        admin_ids=[ADMIN_ID],
        session_sweep_interval=None,
        payment_instructions="Transfer to BANK 123-456",
    )


@pytest.fixture()
def messenger():
    return InMemoryMessenger()


@pytest.fixture()
def bot(bot_settings, messenger):
    return build_bot(bot_settings, messenger=messenger)


class ChatDriver:
    """Feeds inbound events to a bot the way the webhook would."""

    def __init__(self, bot, messenger):
        self.bot = bot
        self.messenger = messenger
        self._ids = itertools.count(1)

    def text(self, actor_id, body, name="Buyer", username=""):
        return self.bot.handle_event(
            TextMessage(
                actor_id=actor_id,
                display_name=name,
                username=username,
                update_id=next(self._ids),
                text=body,
                message_ref=next(self._ids),
            )
        )

    def photo(self, actor_id, file_ref="proof-file-1", caption="", name="Buyer"):
        return self.bot.handle_event(
            PhotoMessage(
                actor_id=actor_id,
                display_name=name,
                update_id=next(self._ids),
                file_ref=file_ref,
                caption=caption,
                message_ref=next(self._ids),
            )
        )

    def press(self, actor_id, data, message_ref=None, name="Buyer"):
        return self.bot.handle_event(
            ButtonPress(
                actor_id=actor_id,
                display_name=name,
                update_id=next(self._ids),
                callback_id=f"cb-{next(self._ids)}",
                data=data,
                message_ref=message_ref,
            )
        )

    def session(self, actor_id):
        return self.bot.sessions.get(actor_id)

    def last_text(self, actor_id):
        call = self.messenger.last_for(actor_id)
        return call.text if call else None

    def texts(self, actor_id):
        return self.messenger.texts_for(actor_id)


@pytest.fixture()
def chat(bot, messenger):
    return ChatDriver(bot, messenger)


@pytest.fixture()
def make_product(bot):
    def _make(name="Netflix 1 Month", price_sell=15000, stock=10, price_cost=10000):
        return bot.products.create_product(
            CreateProductDTO(
                name=name,
                price_sell=price_sell,
                price_cost=price_cost,
                stock=stock,
                category="Streaming",
                unit="account",
            )
        )

    return _make
