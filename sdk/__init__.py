"""Telegram Bot API gateway — client, call results, markup builders and models.

The :class:`BotClient` class forwards any Bot API method by name and returns a
:class:`MethodResult`; typed wrappers and update shortcuts sit on top of it.

Usage::

    from sdk import BotClient, MethodResult
    from sdk.markup import inline_keyboard
    from sdk.models import Update, Message
"""

from sdk.client import BotClient, InputFile, get_default_client
from sdk.exceptions import APIException
from sdk.result import MethodResult

__all__ = [
    "BotClient",
    "InputFile",
    "get_default_client",
    "APIException",
    "MethodResult",
]
