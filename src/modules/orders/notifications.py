"""Outbound messages produced by order status transitions.

Every transition sends exactly one message to the buyer; acceptance
additionally sends one prompt to the verifying admin.  Delivery goes
through the ``Notifier``, which logs and swallows platform failures so a
committed transition is never undone by an unreachable buyer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from modules.core.formatting import format_money
from modules.orders.constants import OrderStatus

if TYPE_CHECKING:
    from modules.bot.messenger import Notifier
    from modules.orders.models import Order


class OrderNotifications:
    def __init__(self, notifier: Notifier, currency: str = "Rp") -> None:
        self._notifier = notifier
        self._currency = currency

    def status_changed(self, order: Order, detail: str = "") -> bool:
        """Tell the buyer about the order's new status."""
        total = format_money(order.total_price, self._currency)
        if order.status == OrderStatus.PAID:
            text = (
                f"Payment for {order.invoice} ({total}) has been verified. "
                "Your order is being processed."
            )
        elif order.status == OrderStatus.REJECTED:
            text = f"Order {order.invoice} was rejected."
            if detail:
                text += f"\nReason: {detail}"
        elif order.status == OrderStatus.SENT:
            text = f"Your order {order.invoice} has been delivered:\n\n{detail}"
            return self._notifier.notify(
                order.buyer_id,
                text,
                buttons=[[("Confirm receipt", f"done:{order.invoice}")]],
            )
        elif order.status == OrderStatus.COMPLETED:
            text = f"Order {order.invoice} is completed. Thank you for shopping!"
        else:
            text = f"Order {order.invoice} is now {order.status}."
        return self._notifier.notify(order.buyer_id, text)

    def fulfillment_prompt(self, order: Order, verifier_id: str) -> bool:
        """Ask the verifying admin whether to relay the goods right away."""
        return self._notifier.notify(
            verifier_id,
            f"{order.invoice} accepted. Send the fulfillment payload to "
            f"{order.buyer_name or order.buyer_id} now?",
            buttons=[
                [
                    ("Send now", f"ful:{order.invoice}"),
                    ("Later", f"skip:{order.invoice}"),
                ]
            ],
        )
