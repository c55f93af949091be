"""Outbound messaging boundary.

``IMessenger`` is the capability set the core needs from the messaging
platform client.  The platform client itself is not part of this
project: deployments point ``BOT_MESSENGER_CLASS`` at their
implementation.  ``InMemoryMessenger`` records every call and is the
default (development, tests).

``Notifier`` is what the core actually calls.  It never lets a platform
failure escape: a buyer who blocked the bot must not roll back an order
transition that has already been committed.
"""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

import structlog

from modules.bot.exceptions import MessengerError

logger = structlog.get_logger(__name__)

Button = Tuple[str, str]
Keyboard = List[List[Button]]


class IMessenger(ABC):
    """Platform operations used by the core.

    ``send_*`` return the platform message id when there is one, so the
    caller can edit or delete the message later.
    """

    @abstractmethod
    def send_text(
        self, actor_id: str, text: str, buttons: Optional[Keyboard] = None
    ) -> Optional[int]: ...

    @abstractmethod
    def send_photo(
        self,
        actor_id: str,
        file_ref: str,
        caption: str = "",
        buttons: Optional[Keyboard] = None,
    ) -> Optional[int]: ...

    @abstractmethod
    def send_document(
        self,
        actor_id: str,
        content: bytes,
        filename: str,
        mime_type: str,
        caption: str = "",
    ) -> Optional[int]: ...

    @abstractmethod
    def edit_message(
        self,
        actor_id: str,
        message_ref: int,
        text: str,
        buttons: Optional[Keyboard] = None,
    ) -> None: ...

    @abstractmethod
    def acknowledge_button_press(self, callback_id: str, text: str = "") -> None: ...

    @abstractmethod
    def delete_message(self, actor_id: str, message_ref: int) -> None: ...

    @abstractmethod
    def resolve_download_url(self, file_ref: str) -> str: ...


@dataclass
class OutboundCall:
    """One recorded messenger call."""

    method: str
    actor_id: str = ""
    text: str = ""
    buttons: Optional[Keyboard] = None
    file_ref: str = ""
    filename: str = ""
    mime_type: str = ""
    content: bytes = b""
    message_ref: Optional[int] = None
    callback_id: str = ""

    @property
    def button_data(self) -> List[str]:
        return [data for row in self.buttons or [] for _label, data in row]


@dataclass
class InMemoryMessenger(IMessenger):
    """Records calls instead of talking to a platform.

    Actors listed in ``blocked`` make every call addressed to them raise
    ``MessengerError``, like a user who blocked the bot.
    """

    file_url_template: str = "memory://files/{file_ref}"
    blocked: Set[str] = field(default_factory=set)
    calls: List[OutboundCall] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _record(self, call: OutboundCall) -> Optional[int]:
        if call.actor_id and call.actor_id in self.blocked:
            raise MessengerError(f"Actor {call.actor_id} blocked the bot.")
        with self._lock:
            self.calls.append(call)
            message_id = next(self._ids)
        logger.info(
            "messenger.call",
            method=call.method,
            actor_id=call.actor_id,
            message_ref=call.message_ref,
        )
        return message_id

    def send_text(self, actor_id, text, buttons=None):
        return self._record(
            OutboundCall("send_text", actor_id=actor_id, text=text, buttons=buttons)
        )

    def send_photo(self, actor_id, file_ref, caption="", buttons=None):
        return self._record(
            OutboundCall(
                "send_photo",
                actor_id=actor_id,
                file_ref=file_ref,
                text=caption,
                buttons=buttons,
            )
        )

    def send_document(self, actor_id, content, filename, mime_type, caption=""):
        return self._record(
            OutboundCall(
                "send_document",
                actor_id=actor_id,
                content=content,
                filename=filename,
                mime_type=mime_type,
                text=caption,
            )
        )

    def edit_message(self, actor_id, message_ref, text, buttons=None):
        self._record(
            OutboundCall(
                "edit_message",
                actor_id=actor_id,
                message_ref=message_ref,
                text=text,
                buttons=buttons,
            )
        )

    def acknowledge_button_press(self, callback_id, text=""):
        self._record(
            OutboundCall(
                "acknowledge_button_press", text=text, callback_id=callback_id
            )
        )

    def delete_message(self, actor_id, message_ref):
        self._record(
            OutboundCall("delete_message", actor_id=actor_id, message_ref=message_ref)
        )

    def resolve_download_url(self, file_ref):
        return self.file_url_template.format(file_ref=file_ref)

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    def sent_to(self, actor_id: str, methods: Iterable[str] = ()) -> List[OutboundCall]:
        wanted = set(methods)
        return [
            call
            for call in self.calls
            if call.actor_id == actor_id and (not wanted or call.method in wanted)
        ]

    def texts_for(self, actor_id: str) -> List[str]:
        return [
            call.text
            for call in self.sent_to(
                actor_id, ("send_text", "send_photo", "edit_message", "send_document")
            )
        ]

    def last_for(self, actor_id: str) -> Optional[OutboundCall]:
        calls = [c for c in self.sent_to(actor_id) if c.method != "delete_message"]
        return calls[-1] if calls else None

    def reset(self) -> None:
        with self._lock:
            self.calls.clear()


class Notifier:
    """Failure-tolerant facade over an ``IMessenger``.

    Every method logs and swallows platform errors; delivery outcomes are
    reported through the return value only.
    """

    def __init__(self, messenger: IMessenger) -> None:
        self._messenger = messenger

    @property
    def messenger(self) -> IMessenger:
        return self._messenger

    def send(
        self, actor_id: str, text: str, buttons: Optional[Keyboard] = None
    ) -> Optional[int]:
        """Send a text and return its message id, or ``None`` on failure."""
        try:
            return self._messenger.send_text(actor_id, text, buttons)
        except Exception:
            logger.warning("notification.failed", actor_id=actor_id, exc_info=True)
            return None

    def notify(
        self, actor_id: str, text: str, buttons: Optional[Keyboard] = None
    ) -> bool:
        try:
            self._messenger.send_text(actor_id, text, buttons)
        except Exception:
            logger.warning("notification.failed", actor_id=actor_id, exc_info=True)
            return False
        return True

    def notify_photo(
        self,
        actor_id: str,
        file_ref: str,
        caption: str = "",
        buttons: Optional[Keyboard] = None,
    ) -> bool:
        try:
            self._messenger.send_photo(actor_id, file_ref, caption, buttons)
        except Exception:
            logger.warning("notification.failed", actor_id=actor_id, exc_info=True)
            return False
        return True

    def send_document(
        self,
        actor_id: str,
        content: bytes,
        filename: str,
        mime_type: str,
        caption: str = "",
    ) -> bool:
        try:
            self._messenger.send_document(
                actor_id, content, filename, mime_type, caption
            )
        except Exception:
            logger.warning("notification.failed", actor_id=actor_id, exc_info=True)
            return False
        return True

    def edit(
        self,
        actor_id: str,
        message_ref: int,
        text: str,
        buttons: Optional[Keyboard] = None,
    ) -> bool:
        try:
            self._messenger.edit_message(actor_id, message_ref, text, buttons)
        except Exception:
            logger.warning(
                "notification.edit_failed", actor_id=actor_id, exc_info=True
            )
            return False
        return True

    def acknowledge(self, callback_id: str, text: str = "") -> None:
        try:
            self._messenger.acknowledge_button_press(callback_id, text)
        except Exception:
            logger.warning(
                "notification.ack_failed", callback_id=callback_id, exc_info=True
            )

    def delete(self, actor_id: str, message_ref: int) -> None:
        try:
            self._messenger.delete_message(actor_id, message_ref)
        except Exception:
            logger.warning(
                "notification.delete_failed", actor_id=actor_id, exc_info=True
            )

    def download_url(self, file_ref: str) -> Optional[str]:
        try:
            return self._messenger.resolve_download_url(file_ref)
        except Exception:
            logger.warning(
                "notification.resolve_failed", file_ref=file_ref, exc_info=True
            )
            return None
