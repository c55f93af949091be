"""Order domain constants.

Defines status choices and valid status transitions for the order
verification state machine.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Awaiting verification"
    PAID = "PAID", "Paid"
    REJECTED = "REJECTED", "Rejected"
    SENT = "SENT", "Sent"
    COMPLETED = "COMPLETED", "Completed"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.REJECTED},
    OrderStatus.PAID: {OrderStatus.SENT, OrderStatus.COMPLETED},
    OrderStatus.SENT: {OrderStatus.COMPLETED},
    OrderStatus.REJECTED: set(),
    OrderStatus.COMPLETED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.REJECTED, OrderStatus.COMPLETED}

OPEN_STATES: set[str] = {OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.SENT}

INVOICE_MAX_RETRIES = 5
