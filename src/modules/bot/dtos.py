"""Webhook update DTOs.

Pydantic v2 models of the subset of the messaging platform's update
JSON the bot consumes: private-chat messages carrying text or a photo,
and inline-keyboard callbacks.  Unknown fields are ignored; updates of
other kinds (edited messages, stickers, channel posts...) parse to
``None`` and are acknowledged without effect.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from modules.bot.exceptions import MalformedUpdate
from modules.bot.inbound import ButtonPress, Event, PhotoMessage, TextMessage


class UserDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    is_bot: bool = False
    first_name: str = ""
    last_name: str = ""
    username: Optional[str] = None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.username or str(self.id)


class ChatDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    type: str = "private"


class PhotoSizeDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    file_id: str
    width: int = 0
    height: int = 0
    file_size: Optional[int] = None


class MessageDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    message_id: int
    chat: ChatDTO
    from_user: Optional[UserDTO] = Field(default=None, alias="from")
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: Optional[List[PhotoSizeDTO]] = None


class CallbackQueryDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    from_user: UserDTO = Field(alias="from")
    message: Optional[MessageDTO] = None
    data: Optional[str] = None


class UpdateDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    update_id: int
    message: Optional[MessageDTO] = None
    callback_query: Optional[CallbackQueryDTO] = None

    def to_event(self) -> Optional[Event]:
        if self.message is not None:
            return self._message_event(self.message)
        if self.callback_query is not None:
            return self._callback_event(self.callback_query)
        return None

    def _message_event(self, message: MessageDTO) -> Optional[Event]:
        user = message.from_user
        if user is not None and user.is_bot:
            return None
        common = dict(
            actor_id=str(message.chat.id),
            display_name=user.display_name if user else "",
            username=(user.username or "") if user else "",
            update_id=self.update_id,
            message_ref=message.message_id,
        )
        if message.photo:
            # Sizes are listed smallest first.
            return PhotoMessage(
                file_ref=message.photo[-1].file_id,
                caption=message.caption or "",
                **common,
            )
        if message.text is not None:
            return TextMessage(text=message.text, **common)
        return None

    def _callback_event(self, query: CallbackQueryDTO) -> Optional[Event]:
        if not query.data:
            return None
        chat_id = query.message.chat.id if query.message else query.from_user.id
        return ButtonPress(
            actor_id=str(chat_id),
            display_name=query.from_user.display_name,
            username=query.from_user.username or "",
            update_id=self.update_id,
            callback_id=query.id,
            data=query.data,
            message_ref=query.message.message_id if query.message else None,
        )


def parse_update(raw: Any) -> UpdateDTO:
    """Validate a decoded webhook body.

    Raises:
        MalformedUpdate: the body is not an update object.
    """
    if not isinstance(raw, dict):
        raise MalformedUpdate("Update body must be a JSON object.")
    try:
        return UpdateDTO.model_validate(raw)
    except ValidationError as exc:
        raise MalformedUpdate(f"Invalid update: {exc.error_count()} error(s).") from exc
