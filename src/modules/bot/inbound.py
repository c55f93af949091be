"""Inbound events the core understands.

Platform updates are reduced to one of three shapes before they reach
the dispatcher.  ``actor_id`` is the chat the bot talks to; replies,
sessions and carts are all keyed by it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class InboundEvent:
    actor_id: str
    display_name: str = ""
    username: str = ""
    update_id: Optional[int] = None


@dataclass(frozen=True)
class TextMessage(InboundEvent):
    text: str = ""
    message_ref: Optional[int] = None


@dataclass(frozen=True)
class PhotoMessage(InboundEvent):
    file_ref: str = ""
    caption: str = ""
    message_ref: Optional[int] = None


@dataclass(frozen=True)
class ButtonPress(InboundEvent):
    callback_id: str = ""
    data: str = ""
    message_ref: Optional[int] = None


Event = Union[TextMessage, PhotoMessage, ButtonPress]


def text_of(event: Event) -> Optional[str]:
    """The text a step handler should consume, if the event carries any."""
    if isinstance(event, TextMessage):
        return event.text
    return None
