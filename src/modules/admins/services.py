"""Admin workflow.

Not a separate state machine: a capability gate evaluated on every
request, plus the privileged operations that span several modules.

An actor is privileged iff it is the configured owner (by id, or by
username with any leading ``@`` ignored, case-insensitive) or its id is
in the admin set.  The check never mutates the admin set.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple

import structlog

from modules.admins.exceptions import InvalidAdminTarget, PermissionDenied
from modules.orders.reports import export_orders_xlsx
from modules.products.exceptions import ProductInUse

if TYPE_CHECKING:
    from modules.admins.repositories.interfaces import IAdminRepository
    from modules.bot.messenger import Notifier
    from modules.carts.services import CartService
    from modules.conversations.services import SessionService
    from modules.orders.services import OrderService
    from modules.products.models import Product
    from modules.products.services import ProductService

logger = structlog.get_logger(__name__)


def _normalize_username(username: Optional[str]) -> str:
    return (username or "").strip().lstrip("@").lower()


class AdminService:
    """Application service for privileged operations."""

    def __init__(
        self,
        repository: IAdminRepository,
        products: ProductService,
        carts: CartService,
        orders: OrderService,
        sessions: SessionService,
        notifier: Notifier,
        owner_id: str = "",
        owner_username: str = "",
    ) -> None:
        self._repo = repository
        self._products = products
        self._carts = carts
        self._orders = orders
        self._sessions = sessions
        self._notifier = notifier
        self._owner_id = owner_id
        self._owner_username = _normalize_username(owner_username)

    # ------------------------------------------------------------------
    # Capability gate
    # ------------------------------------------------------------------

    def is_owner(self, actor_id: str, username: str = "") -> bool:
        if self._owner_id and actor_id == self._owner_id:
            return True
        return bool(self._owner_username) and (
            _normalize_username(username) == self._owner_username
        )

    def is_privileged(self, actor_id: str, username: str = "") -> bool:
        return self.is_owner(actor_id, username) or self._repo.contains(actor_id)

    def require_privileged(self, actor_id: str, username: str = "") -> None:
        if not self.is_privileged(actor_id, username):
            logger.warning("admin.access_denied", actor_id=actor_id)
            raise PermissionDenied("This command is for admins only.")

    def require_owner(self, actor_id: str, username: str = "") -> None:
        if not self.is_owner(actor_id, username):
            logger.warning("admin.owner_access_denied", actor_id=actor_id)
            raise PermissionDenied("This command is for the owner only.")

    def admin_ids(self) -> List[str]:
        """Recipients of admin notifications: the owner id first, then the set."""
        ids = self._repo.list()
        if self._owner_id and self._owner_id not in ids:
            ids.insert(0, self._owner_id)
        return ids

    def count(self) -> int:
        return len(self.admin_ids())

    # ------------------------------------------------------------------
    # Admin set management (owner only)
    # ------------------------------------------------------------------

    def grant(self, actor_id: str, username: str, target_id: str) -> bool:
        self.require_owner(actor_id, username)
        target_id = self._validate_target(target_id)
        added = self._repo.add(target_id)
        logger.info("admin.granted", target_id=target_id, added=added)
        return added

    def revoke(self, actor_id: str, username: str, target_id: str) -> bool:
        self.require_owner(actor_id, username)
        target_id = self._validate_target(target_id)
        removed = self._repo.remove(target_id)
        logger.info("admin.revoked", target_id=target_id, removed=removed)
        return removed

    def _validate_target(self, target_id: str) -> str:
        target_id = (target_id or "").strip()
        if not target_id.lstrip("-").isdigit():
            raise InvalidAdminTarget(f"'{target_id}' is not a chat id.")
        if target_id == self._owner_id:
            raise InvalidAdminTarget("The owner is always an admin.")
        return target_id

    # ------------------------------------------------------------------
    # Privileged operations
    # ------------------------------------------------------------------

    def delete_product(self, product_id: str) -> Product:
        """Remove a product that no open order depends on, and purge it from carts.

        Raises:
            ProductNotFound: unknown product.
            ProductInUse: a PENDING/PAID/SENT order still references it.
        """
        product = self._products.get_product(product_id)
        if self._orders.has_open_orders_for(product_id):
            raise ProductInUse(
                f"{product.name} is part of an order that is still open."
            )
        self._products.delete_product(product_id)
        self._carts.purge_product(product_id)
        logger.info("admin.product_deleted", product_id=product_id, code=product.code)
        return product

    def broadcast(self, text: str, sender_id: str = "") -> Tuple[int, int]:
        """Send *text* to every known actor except the sender.

        Returns ``(delivered, failed)``.
        """
        delivered = failed = 0
        for actor_id in self._sessions.known_actor_ids():
            if actor_id == sender_id:
                continue
            if self._notifier.notify(actor_id, text):
                delivered += 1
            else:
                failed += 1
        logger.info("admin.broadcast_sent", delivered=delivered, failed=failed)
        return delivered, failed

    def notify_admins(self, text: str, buttons=None, exclude: str = "") -> int:
        """Send a message to every admin.  Returns how many were delivered."""
        delivered = 0
        for admin_id in self.admin_ids():
            if admin_id == exclude:
                continue
            if self._notifier.notify(admin_id, text, buttons=buttons):
                delivered += 1
        return delivered

    def notify_admins_photo(self, file_ref: str, caption: str, buttons=None) -> int:
        delivered = 0
        for admin_id in self.admin_ids():
            if self._notifier.notify_photo(
                admin_id, file_ref, caption, buttons=buttons
            ):
                delivered += 1
        return delivered

    def export_report(self) -> bytes:
        return export_orders_xlsx(
            self._orders.list_orders(), proof_url=self._notifier.download_url
        )
