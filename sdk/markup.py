"""Reply-markup builders.

Each builder returns the compact JSON string expected in the ``reply_markup``
field of an outgoing call.  Slashes and non-ASCII characters are left
unescaped.

Example::

    from sdk.markup import inline_keyboard

    keyboard = inline_keyboard([
        [("Yes", "vote:yes"), ("No", "vote:no")],
        [("Source", "https://example.org/repo", "url")],
    ])
    client.send_message(chat_id, "Vote!", reply_markup=keyboard)
"""

from __future__ import annotations

from typing import Iterable, Sequence, Union

from pydantic import BaseModel

from sdk.models import (
    ForceReply,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)

ButtonSpec = Union[InlineKeyboardButton, Sequence[str]]
KeyboardItem = Union[str, KeyboardButton]


def to_json(markup: BaseModel) -> str:
    """Serialize a markup model, leaving out unset optional fields."""
    return markup.model_dump_json(exclude_none=True)


def button(text: str, value: str, action_type: str = "callback_data") -> InlineKeyboardButton:
    """Build one inline button as ``{"text": text, action_type: value}``.

    *action_type* is any button action field (``callback_data``, ``url``,
    ``switch_inline_query``, …).
    """
    return InlineKeyboardButton.model_validate({"text": text, action_type: value})


def inline_keyboard(rows: Iterable[Iterable[ButtonSpec]]) -> str:
    """Build an ``InlineKeyboardMarkup`` from rows of button specs.

    A spec is a ``(text, value)`` or ``(text, value, action_type)`` tuple, or
    a button already made with :func:`button`.
    """
    grid = [
        [spec if isinstance(spec, InlineKeyboardButton) else button(*spec) for spec in row]
        for row in rows
    ]
    return to_json(InlineKeyboardMarkup(inline_keyboard=grid))


def keyboard_button(
    text: str, request_contact: bool = False, request_location: bool = False
) -> KeyboardButton:
    """Build a reply-keyboard button that may request the contact or location.

    Plain strings are enough for simple text buttons.
    """
    return KeyboardButton(text=text, request_contact=request_contact, request_location=request_location)


def reply_keyboard(
    rows: Iterable[Iterable[KeyboardItem]],
    resize: bool = False,
    one_time: bool = False,
    selective: bool = True,
) -> str:
    """Build a ``ReplyKeyboardMarkup`` from rows of labels or keyboard buttons."""
    markup = ReplyKeyboardMarkup(
        keyboard=[list(row) for row in rows],
        resize_keyboard=resize,
        one_time_keyboard=one_time,
        selective=selective,
    )
    return to_json(markup)


def remove_keyboard(selective: bool = True) -> str:
    """Build a ``ReplyKeyboardRemove`` directive."""
    return to_json(ReplyKeyboardRemove(remove_keyboard=True, selective=selective))


def force_reply(selective: bool = True) -> str:
    """Build a ``ForceReply`` directive."""
    return to_json(ForceReply(force_reply=True, selective=selective))
