"""Pydantic models for the slice of the Telegram Bot API schema hookgram touches.

The library itself works on plain mappings; these models give the dispatcher
a typed view of an update (:func:`bot.dispatcher.process_update` validates
each one against :class:`Update`) and give the markup builders in
:mod:`sdk.markup` a single place that defines the shape of every keyboard
object.
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class ResponseParameters(BaseModel):
    """Contains information about why a request was unsuccessful."""

    migrate_to_chat_id: Optional[int] = None
    retry_after: Optional[int] = None

    model_config = {"populate_by_name": True}


class User(BaseModel):
    """This object represents a Telegram user or bot."""

    id: int
    is_bot: bool
    first_name: str
    last_name: Optional[str] = None
    username: Optional[str] = None
    language_code: Optional[str] = None

    model_config = {"populate_by_name": True}


class Chat(BaseModel):
    """This object represents a chat."""

    id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    model_config = {"populate_by_name": True}


class MessageEntity(BaseModel):
    """One special entity in a text message (hashtag, URL, bot command, …)."""

    type: str
    offset: int
    length: int
    url: Optional[str] = None
    user: Optional["User"] = None
    language: Optional[str] = None

    model_config = {"populate_by_name": True}


class PhotoSize(BaseModel):
    """One size of a photo or a file / sticker thumbnail."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Document(BaseModel):
    """A general file (as opposed to photos, voice messages and audio files)."""

    file_id: str
    file_unique_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Video(BaseModel):
    """A video file."""

    file_id: str
    file_unique_id: str
    width: int
    height: int
    duration: int
    mime_type: Optional[str] = None
    file_size: Optional[int] = None

    model_config = {"populate_by_name": True}


class Location(BaseModel):
    """A point on the map."""

    longitude: float
    latitude: float

    model_config = {"populate_by_name": True}


class Message(BaseModel):
    """This object represents a message."""

    message_id: int
    date: int
    chat: "Chat"
    from_field: Optional["User"] = Field(None, alias="from")
    forward_from: Optional["User"] = None
    forward_from_chat: Optional["Chat"] = None
    reply_to_message: Optional["Message"] = None
    text: Optional[str] = None
    entities: Optional[List["MessageEntity"]] = None
    caption: Optional[str] = None
    caption_entities: Optional[List["MessageEntity"]] = None
    photo: Optional[List["PhotoSize"]] = None
    video: Optional["Video"] = None
    document: Optional["Document"] = None
    location: Optional["Location"] = None

    model_config = {"populate_by_name": True}


class CallbackQuery(BaseModel):
    """An incoming callback query from a callback button in an inline keyboard."""

    id: str
    from_field: "User" = Field(..., alias="from")
    chat_instance: str
    message: Optional["Message"] = None
    inline_message_id: Optional[str] = None
    data: Optional[str] = None

    model_config = {"populate_by_name": True}


class InlineQuery(BaseModel):
    """An incoming inline query."""

    id: str
    from_field: "User" = Field(..., alias="from")
    query: str
    offset: str
    location: Optional["Location"] = None

    model_config = {"populate_by_name": True}


class ChosenInlineResult(BaseModel):
    """An inline query result chosen by a user and sent to their chat partner."""

    result_id: str
    from_field: "User" = Field(..., alias="from")
    query: str
    inline_message_id: Optional[str] = None
    location: Optional["Location"] = None

    model_config = {"populate_by_name": True}


class Update(BaseModel):
    """An incoming update. At most **one** of the optional kind fields is present."""

    update_id: int
    message: Optional["Message"] = None
    edited_message: Optional["Message"] = None
    channel_post: Optional["Message"] = None
    edited_channel_post: Optional["Message"] = None
    inline_query: Optional["InlineQuery"] = None
    chosen_inline_result: Optional["ChosenInlineResult"] = None
    callback_query: Optional["CallbackQuery"] = None

    model_config = {"populate_by_name": True}


class File(BaseModel):
    """A file ready to be downloaded from ``/file/bot<token>/<file_path>``."""

    file_id: str
    file_unique_id: str
    file_size: Optional[int] = None
    file_path: Optional[str] = None

    model_config = {"populate_by_name": True}


class ChatMember(BaseModel):
    """Information about one member of a chat."""

    user: "User"
    status: str

    model_config = {"populate_by_name": True}


# ── Reply markup ─────────────────────────────────────────────────────────────


class InlineKeyboardButton(BaseModel):
    """One button of an inline keyboard.

    Exactly one action field must be set.  Action types this model does not
    declare (newer Bot API additions) are kept as extra fields and emitted
    unchanged when serialized.
    """

    text: str
    url: Optional[str] = None
    callback_data: Optional[str] = None
    switch_inline_query: Optional[str] = None
    switch_inline_query_current_chat: Optional[str] = None
    pay: Optional[bool] = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class InlineKeyboardMarkup(BaseModel):
    """An inline keyboard that appears right next to the message it belongs to."""

    inline_keyboard: List[List["InlineKeyboardButton"]]

    model_config = {"populate_by_name": True}


class KeyboardButton(BaseModel):
    """One button of the reply keyboard. Plain strings may be used instead."""

    text: str
    request_contact: Optional[bool] = None
    request_location: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ReplyKeyboardMarkup(BaseModel):
    """A custom keyboard with reply options."""

    keyboard: List[List[Union[str, "KeyboardButton"]]]
    resize_keyboard: Optional[bool] = False
    one_time_keyboard: Optional[bool] = False
    selective: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ReplyKeyboardRemove(BaseModel):
    """Asks clients to remove the current custom keyboard."""

    remove_keyboard: bool = True
    selective: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ForceReply(BaseModel):
    """Asks clients to display a reply interface to the user."""

    force_reply: bool = True
    selective: Optional[bool] = None

    model_config = {"populate_by_name": True}

