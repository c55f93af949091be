"""Composition root.

Builds the repositories, services and dispatcher of one bot from the
``BOT_*`` Django settings.  The process keeps a single instance
(``get_bot``); tests build their own with ``build_bot``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

import structlog
from django.conf import settings
from django.core.cache import cache as default_cache
from django.utils.module_loading import import_string

from modules.admins.repositories import AdminMemoryRepository
from modules.admins.services import AdminService
from modules.bot.commands import CommandRouter
from modules.bot.dispatcher import BotDispatcher, HandleResult
from modules.bot.flows import ConversationFlows
from modules.bot.inbound import Event
from modules.bot.messenger import IMessenger, Notifier
from modules.carts.services import CartService
from modules.conversations.repositories import SessionMemoryRepository
from modules.conversations.services import SessionService
from modules.core.locks import ActorLockRegistry
from modules.orders.notifications import OrderNotifications
from modules.orders.repositories import OrderMemoryRepository
from modules.orders.services import OrderService
from modules.products.repositories import ProductMemoryRepository
from modules.products.services import ProductService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class BotSettings:
    owner_id: str = ""
    owner_username: str = ""
    admin_ids: List[str] = field(default_factory=list)
    cancel_clears_cart: bool = False
    session_idle_timeout: Optional[int] = 6 * 60 * 60
    session_sweep_interval: Optional[int] = 300
    update_dedup_ttl: int = 24 * 60 * 60
    messenger_class: str = "modules.bot.messenger.InMemoryMessenger"
    payment_instructions: str = ""
    currency: str = "Rp"

    @classmethod
    def from_django(cls) -> BotSettings:
        return cls(
            owner_id=settings.BOT_OWNER_ID,
            owner_username=settings.BOT_OWNER_USERNAME,
            admin_ids=list(settings.BOT_ADMIN_IDS),
            cancel_clears_cart=settings.BOT_CANCEL_CLEARS_CART,
            session_idle_timeout=settings.BOT_SESSION_IDLE_TIMEOUT or None,
            session_sweep_interval=settings.BOT_SESSION_SWEEP_INTERVAL or None,
            update_dedup_ttl=settings.BOT_UPDATE_DEDUP_TTL,
            messenger_class=settings.BOT_MESSENGER_CLASS,
            payment_instructions=settings.BOT_PAYMENT_INSTRUCTIONS,
            currency=settings.BOT_CURRENCY,
        )


@dataclass
class Bot:
    """A wired bot: services plus the dispatcher that drives them."""

    messenger: IMessenger
    notifier: Notifier
    products: ProductService
    carts: CartService
    sessions: SessionService
    orders: OrderService
    admins: AdminService
    dispatcher: BotDispatcher

    def handle_update(self, raw: Any) -> HandleResult:
        return self.dispatcher.handle_update(raw)

    def handle_event(self, event: Event) -> HandleResult:
        return self.dispatcher.handle_event(event)

    def get_stats(self) -> Dict[str, int]:
        """Read-only counters for the liveness probe."""
        return {
            "product_count": self.products.count(),
            "order_count": self.orders.count(),
            "admin_count": self.admins.count(),
        }


def build_bot(
    bot_settings: Optional[BotSettings] = None,
    messenger: Optional[IMessenger] = None,
    cache: Any = default_cache,
) -> Bot:
    """Wire a bot with fresh in-memory repositories."""
    bot_settings = bot_settings or BotSettings.from_django()
    if messenger is None:
        messenger = import_string(bot_settings.messenger_class)()
    notifier = Notifier(messenger)
    locks = ActorLockRegistry()

    product_repo = ProductMemoryRepository()
    session_repo = SessionMemoryRepository()

    idle_timeout = bot_settings.session_idle_timeout
    sessions = SessionService(
        session_repo,
        idle_timeout=timedelta(seconds=idle_timeout) if idle_timeout else None,
        cancel_clears_cart=bot_settings.cancel_clears_cart,
        locks=locks,
    )
    products = ProductService(product_repo)
    carts = CartService(session_repo, product_repo)
    orders = OrderService(
        OrderMemoryRepository(),
        product_repo,
        carts,
        notifications=OrderNotifications(notifier, currency=bot_settings.currency),
    )
    admins = AdminService(
        AdminMemoryRepository(bot_settings.admin_ids),
        products=products,
        carts=carts,
        orders=orders,
        sessions=sessions,
        notifier=notifier,
        owner_id=bot_settings.owner_id,
        owner_username=bot_settings.owner_username,
    )
    flows = ConversationFlows(
        sessions,
        products,
        orders,
        admins,
        notifier,
        currency=bot_settings.currency,
        payment_instructions=bot_settings.payment_instructions,
    )
    router = CommandRouter(flows, products, carts, orders, admins, notifier)
    dispatcher = BotDispatcher(
        sessions,
        flows,
        router,
        notifier,
        locks,
        cache=cache,
        dedup_ttl=bot_settings.update_dedup_ttl,
        sweep_interval=bot_settings.session_sweep_interval,
    )
    logger.info(
        "bot.built",
        messenger=type(messenger).__name__,
        admins=len(bot_settings.admin_ids),
        owner_configured=bool(bot_settings.owner_id or bot_settings.owner_username),
    )
    return Bot(
        messenger=messenger,
        notifier=notifier,
        products=products,
        carts=carts,
        sessions=sessions,
        orders=orders,
        admins=admins,
        dispatcher=dispatcher,
    )


_bot: Optional[Bot] = None
_bot_lock = threading.Lock()


def get_bot() -> Bot:
    """Return the process-wide bot, building it on first use."""
    global _bot
    with _bot_lock:
        if _bot is None:
            _bot = build_bot()
        return _bot


def reset_bot() -> None:
    """Drop the process-wide bot; the next ``get_bot`` builds a fresh one."""
    global _bot
    with _bot_lock:
        _bot = None
